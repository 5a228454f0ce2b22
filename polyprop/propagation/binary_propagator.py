from typing import Union

from opentracing import InvalidCarrierException
from opentracing import SpanContextCorruptedException

from ..opentracing.context import SpanContext
from .propagator import Propagator, decoded_context, encode_ids

_BINARY_FORMAT_LENGTH = 26


class BinaryPropagator(Propagator):
    """A Propagator for byte carriers.

        Follows the layout of the traceparent header in
        https://w3c.github.io/trace-context/: version byte, 16 byte trace
        id, 8 byte span id, flags byte.
        Does not support baggage items.
    """

    def inject(self, span_context: SpanContext, carrier: bytearray):

        if not isinstance(carrier, bytearray):
            raise InvalidCarrierException(
                "binary context can only be written to a bytearray")

        trace_id, span_id = encode_ids(span_context)
        carrier.extend(b'\00')  # version
        carrier.extend(trace_id)
        carrier.extend(span_id)
        carrier.extend(b'\01')  # flag sampled=true

    def extract(self, carrier: Union[bytes, bytearray, memoryview]
                ) -> SpanContext:

        carrier = memoryview(carrier)
        if len(carrier) < _BINARY_FORMAT_LENGTH:
            raise SpanContextCorruptedException()

        version = carrier[0]
        trace_id = bytes(carrier[1:17])
        span_id = bytes(carrier[17:25])
        #  flags = carrier[25]
        if version == 255:
            raise SpanContextCorruptedException()

        return decoded_context(trace_id, span_id)
