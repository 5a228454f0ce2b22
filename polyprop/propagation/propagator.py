from abc import ABC, abstractmethod
from typing import Any, Tuple

from opentracing import SpanContextCorruptedException

from ..opentracing.context import SpanContext, SPAN_ID, TRACE_ID


class Injector(ABC):

    @abstractmethod
    def inject(self, span_context: SpanContext, carrier: Any) -> None:
        pass


class Extractor(ABC):

    @abstractmethod
    def extract(self, carrier: Any) -> SpanContext:
        pass


class Propagator(Injector, Extractor):
    """ A codec that both writes a SpanContext into and reads it from
        the same family of carriers.
    """


def encode_ids(span_context: SpanContext) -> Tuple[bytes, bytes]:
    """ The (16 byte trace id, 8 byte span id) pair of a context whose ids
        are hex strings, as generated by IdGenerator.
    """
    try:
        trace_id = bytes.fromhex(str(span_context.trace_id))
        span_id = bytes.fromhex(str(span_context.span_id))
    except ValueError:
        raise ValueError("trace state ids are not hex encoded: {!r}"
                         .format(span_context.trace_state))
    if len(trace_id) != 16 or len(span_id) != 8:
        raise ValueError("trace state ids must be 16 and 8 bytes long: {!r}"
                         .format(span_context.trace_state))
    return trace_id, span_id


def decoded_context(trace_id: bytes, span_id: bytes) -> SpanContext:
    if not any(trace_id) or not any(span_id):
        raise SpanContextCorruptedException("all-zero trace or span id")
    return SpanContext(trace_state={TRACE_ID: trace_id.hex(),
                                    SPAN_ID: span_id.hex()})
