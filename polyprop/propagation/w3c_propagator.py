from typing import Dict, NamedTuple

from opentracing import SpanContextCorruptedException

from ..opentracing.context import SpanContext
from .propagator import Propagator, decoded_context, encode_ids


class HeaderNames(NamedTuple):
    traceparent: str = 'traceparent'
    tracestate: str = 'tracestate'


class W3CPropagator(Propagator):
    """A partial implementation of https://w3c.github.io/trace-context/

        Only the traceparent header is implemented; baggage and the
        tracestate header are not propagated.
    """

    field_separator = '-'

    def inject(self, span_context: SpanContext, carrier: Dict[str, str]):
        trace_id, span_id = encode_ids(span_context)
        carrier[HeaderNames.traceparent] = self.field_separator.join([
            "00",  # version
            trace_id.hex(),
            span_id.hex(),
            "01",  # flag sampled=true
        ])

    def extract(self, carrier: Dict[str, str]) -> SpanContext:
        try:
            header = carrier[HeaderNames.traceparent]
        except KeyError:
            raise SpanContextCorruptedException("no traceparent header")

        try:
            version_str, trace_id_str, parent_id_str, flags_str = \
                header.strip().split(self.field_separator)
            version = bytes.fromhex(version_str)
            trace_id = bytes.fromhex(trace_id_str)
            parent_id = bytes.fromhex(parent_id_str)
            bytes.fromhex(flags_str)
        except ValueError:
            raise SpanContextCorruptedException(header)

        if (len(version) != 1 or version[0] == 255
                or len(trace_id) != 16 or len(parent_id) != 8):
            raise SpanContextCorruptedException(header)

        return decoded_context(trace_id, parent_id)
