from collections.abc import Mapping, MutableMapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Type, Union

from ..config import TracerConfig, get_config
from ..propagation.propagator import Extractor, Injector
from ..propagation.registry import CodecRegistry
from .context import SpanContext
from .ids import IdGenerator
from .span import Span, SpanBuilder, TagDict


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Tracer(object):
    """ Build spans and move their context into and out of carriers.

        inject() and extract() know nothing about carrier types: they resolve
        a codec from the registry by the runtime type of the carrier.
        A freshly constructed Tracer has the text-map codec registered for
        mappings; register_standard_propagators() adds the W3C and binary
        codecs and register_injector()/register_extractor() anything else.

        This is not an opentracing.Tracer: inject() and extract() take the
        carrier alone, with no format argument, and there is no scope manager
        or start_active_span(). Spans still extend opentracing.Span.
    """

    _config: TracerConfig
    _registry: CodecRegistry
    id_generator: IdGenerator

    def __init__(self,
                 config: Optional[TracerConfig] = None,
                 clock: Callable[[], datetime] = _utc_now) -> None:
        self._config = get_config() if config is None else config
        self._clock = clock
        self._registry = CodecRegistry()
        self.id_generator = IdGenerator()
        self._register_builtin_propagators()

    def _register_builtin_propagators(self) -> None:
        from ..propagation.text_propagator import TextMapPropagator
        text_map = TextMapPropagator(
            baggage_enabled=self._config.baggage_enabled)
        self.register_injector(MutableMapping, text_map)
        self.register_extractor(Mapping, text_map)

    def register_standard_propagators(self) -> None:
        from ..propagation.binary_propagator import BinaryPropagator
        from ..propagation.carriers import HTTPHeaders
        from ..propagation.w3c_propagator import W3CPropagator
        w3c = W3CPropagator()
        binary = BinaryPropagator()
        self.register_injector(HTTPHeaders, w3c)
        self.register_extractor(HTTPHeaders, w3c)
        self.register_injector(bytearray, binary)
        for carrier_type in (bytes, bytearray, memoryview):
            self.register_extractor(carrier_type, binary)

    @property
    def config(self) -> TracerConfig:
        return self._config

    @property
    def registry(self) -> CodecRegistry:
        return self._registry

    def now(self) -> datetime:
        return self._clock()

    def register_injector(self, carrier_type: Type[Any],
                          injector: Injector) -> Optional[Injector]:
        """ Make `carrier_type` (and its subtypes) injectable.

            First registration wins; returns the injector that was already
            registered, if any.
        """
        return self._registry.register_injector(carrier_type, injector)

    def register_extractor(self, carrier_type: Type[Any],
                           extractor: Extractor) -> Optional[Extractor]:
        return self._registry.register_extractor(carrier_type, extractor)

    def build_span(self, operation_name: Optional[str] = None) -> SpanBuilder:
        return SpanBuilder(self, operation_name)

    def start_span(self,
                   operation_name: Optional[str] = None,
                   child_of: Optional[Union[Span, SpanContext]] = None,
                   tags: Optional[TagDict] = None,
                   start_time: Optional[int] = None) -> Span:
        """ Shorthand for configuring a SpanBuilder and starting it.

            :param start_time: microseconds since the epoch
        """
        builder = self.build_span(operation_name)
        if child_of is not None:
            builder.with_parent(child_of)
        for key, value in (tags or {}).items():
            builder.with_tag(key, value)
        if start_time is not None:
            builder.with_start_timestamp(start_time)
        return builder.start()

    def inject(self, span: Union[Span, SpanContext], carrier: Any) -> None:
        injector = self._registry.lookup_injector(type(carrier))
        span_context = span.context if isinstance(span, Span) else span
        injector.inject(span_context, carrier)

    def extract(self, carrier: Any) -> SpanBuilder:
        """ A SpanBuilder whose parent is the context read from `carrier`.
        """
        extractor = self._registry.lookup_extractor(type(carrier))
        return self.build_span().with_parent(extractor.extract(carrier))

    join = extract
