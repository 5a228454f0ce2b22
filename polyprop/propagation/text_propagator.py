from typing import Any, Dict, Iterable, Mapping, MutableMapping

from opentracing import SpanContextCorruptedException

from ..opentracing.context import SpanContext, SPAN_ID, TRACE_ID
from .propagator import Propagator


class TextMapPropagator(Propagator):
    """ The built-in codec for string-keyed, string-valued map carriers.

        inject() copies every trace state entry, stringified, into the
        carrier and, unless baggage is disabled, every baggage entry as well.
        Keys are written as they are, without prefixes.

        extract() reads the trace state keys (case-insensitively) and, unless
        baggage is disabled, treats every other entry as baggage.
    """

    def __init__(self,
                 baggage_enabled: bool = True,
                 trace_state_keys: Iterable[str] = (TRACE_ID, SPAN_ID)
                 ) -> None:
        self._baggage_enabled = baggage_enabled
        self._trace_state_keys = tuple(trace_state_keys)

    @property
    def baggage_enabled(self) -> bool:
        return self._baggage_enabled

    def inject(self, span_context: SpanContext,
               carrier: MutableMapping[str, str]) -> None:
        for key, value in span_context.trace_state.items():
            carrier[key] = str(value)
        if self._baggage_enabled:
            for key, value in span_context.baggage.items():
                carrier[key] = value

    def extract(self, carrier: Mapping[str, str]) -> SpanContext:
        keys_by_lower_case = {key.lower(): key
                              for key in self._trace_state_keys}
        trace_state: Dict[str, Any] = dict()
        baggage: Dict[str, str] = dict()
        for k in carrier:
            v = carrier[k]
            try:
                trace_state[keys_by_lower_case[k.lower()]] = v
            except KeyError:
                if self._baggage_enabled:
                    baggage[k] = v

        if len(trace_state) != len(self._trace_state_keys):
            raise SpanContextCorruptedException(
                "missing {}".format(", ".join(
                    key for key in self._trace_state_keys
                    if key not in trace_state)))

        return SpanContext(trace_state=trace_state, baggage=baggage)
