""" Carrier-type based lookup of injectors and extractors.

    Codecs are registered against a carrier *category*: a class compared by
    identity. A concrete carrier type belongs to a category either by
    inheriting from it or by declaring it as a capability interface through
    ``abc.ABCMeta.register`` (or a ``__subclasshook__``), the way ``dict``
    belongs to ``collections.abc.MutableMapping``.

    Resolution is deterministic and has two phases:

    1. the concrete ancestry of the carrier type (``__mro__``), most derived
       first, is checked for an exact registration;
    2. failing that, every registered category is tested, in registration
       order, with ``issubclass(carrier_type, category)``.

    If neither phase finds a codec, NoCodecRegistered is raised.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from opentracing import UnsupportedFormatException

from .propagator import Extractor, Injector

logger = logging.getLogger(__name__)

Codec = TypeVar('Codec', Injector, Extractor)


class NoCodecRegistered(UnsupportedFormatException):
    """ No injector or extractor is registered for a carrier type.

        This is a configuration error (a missing register call), not a
        condition to recover from.
    """

    def __init__(self, kind: str, carrier_type: type) -> None:
        super(NoCodecRegistered, self).__init__(
            "no registered {} for {}".format(kind, _qualified_name(carrier_type)))
        self.kind = kind
        self.carrier_type = carrier_type


def _qualified_name(carrier_type: type) -> str:
    module = getattr(carrier_type, '__module__', None)
    name = getattr(carrier_type, '__qualname__', repr(carrier_type))
    return name if module in (None, 'builtins') else module + '.' + name


class CodecRegistry(object):
    """ Thread-safe, first-write-wins tables of injectors and extractors.
    """

    _injectors: Dict[type, Injector]
    _extractors: Dict[type, Extractor]

    def __init__(self,
                 lock_class: Callable[[], Any] = threading.Lock) -> None:
        self._lock = lock_class()
        self._injectors = dict()
        self._extractors = dict()

    def register_injector(self, carrier_type: Type[Any],
                          injector: Injector) -> Optional[Injector]:
        """ Register `injector` for `carrier_type` unless one is registered.

            :return: the injector registered before this call, or None. A
                non-None result means `injector` was *not* stored.
        """
        if not isinstance(injector, Injector):
            raise TypeError("expected an Injector, found {}"
                            .format(type(injector)))
        return self._register(self._injectors, 'injector',
                              carrier_type, injector)

    def register_extractor(self, carrier_type: Type[Any],
                           extractor: Extractor) -> Optional[Extractor]:
        """ Register `extractor` for `carrier_type` unless one is registered.

            :return: the extractor registered before this call, or None.
        """
        if not isinstance(extractor, Extractor):
            raise TypeError("expected an Extractor, found {}"
                            .format(type(extractor)))
        return self._register(self._extractors, 'extractor',
                              carrier_type, extractor)

    def lookup_injector(self, carrier_type: Type[Any]) -> Injector:
        return self._resolve(self._injectors, 'injector', carrier_type)

    def lookup_extractor(self, carrier_type: Type[Any]) -> Extractor:
        return self._resolve(self._extractors, 'extractor', carrier_type)

    def _register(self, table: Dict[type, Codec], kind: str,
                  carrier_type: Type[Any], codec: Codec) -> Optional[Codec]:
        if not isinstance(carrier_type, type):
            raise TypeError("carrier types must be classes, found {!r}"
                            .format(carrier_type))
        with self._lock:
            previous = table.get(carrier_type)
            if previous is None:
                table[carrier_type] = codec

        if previous is None:
            logger.debug("Registered %s %r for %s",
                         kind, codec, _qualified_name(carrier_type))
        else:
            logger.debug("Kept %s %r for %s, ignored %r",
                         kind, previous, _qualified_name(carrier_type), codec)
        return previous

    def _resolve(self, table: Dict[type, Codec], kind: str,
                 carrier_type: Type[Any]) -> Codec:
        with self._lock:
            # Registration order matters for the interface phase
            candidates = list(table.items())

        by_type = dict(candidates)
        for ancestor in carrier_type.__mro__:
            try:
                return by_type[ancestor]
            except KeyError:
                pass

        for category, codec in candidates:
            if issubclass(carrier_type, category):
                logger.debug("Resolved %s for %s via interface %s",
                             kind, _qualified_name(carrier_type),
                             _qualified_name(category))
                return codec

        raise NoCodecRegistered(kind, carrier_type)
