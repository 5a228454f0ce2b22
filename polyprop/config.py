from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class TracerConfig(BaseSettings):
    """ Settings of a Tracer, read from the environment once at construction.

        POLYPROP_DROP_BAGGAGE=true turns off baggage propagation in the
        built-in text-map codec without code changes.
    """
    model_config = SettingsConfigDict(env_prefix='POLYPROP_', frozen=True)

    drop_baggage: bool = False

    @property
    def baggage_enabled(self) -> bool:
        return not self.drop_baggage


@lru_cache(maxsize=None)
def get_config() -> TracerConfig:
    return TracerConfig()
