from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import opentracing

TRACE_ID = 'trace-id'
SPAN_ID = 'span-id'


class SpanContext(opentracing.SpanContext):
    """SpanContext satisfies the opentracing.SpanContext contract.

        It holds the propagable state of a span: the trace state (trace id,
        span id and whatever else an implementation wants to carry across
        process boundaries) and the baggage. Instances are never mutated and
        hand out read-only views; with_baggage_item() returns a new context.
    """

    def __init__(
            self,
            trace_state: Optional[Mapping[str, Any]] = None,
            baggage: Optional[Mapping[str, str]] = None):
        self._trace_state: Dict[str, Any] = dict(trace_state or {})
        self._baggage: Dict[str, str] = dict(baggage or {})

    @property
    def trace_state(self) -> Mapping[str, Any]:
        return MappingProxyType(self._trace_state)

    @property
    def baggage(self) -> Mapping[str, str]:
        return MappingProxyType(self._baggage)

    @property
    def trace_id(self) -> Optional[Any]:
        return self._trace_state.get(TRACE_ID)

    @property
    def span_id(self) -> Optional[Any]:
        return self._trace_state.get(SPAN_ID)

    def with_baggage_item(self, key: str, value: str) -> 'SpanContext':
        new_baggage = self._baggage.copy()
        new_baggage[key] = value
        return SpanContext(trace_state=self._trace_state, baggage=new_baggage)

    def __repr__(self) -> str:
        return 'SpanContext(trace_state={!r}, baggage={!r})'.format(
            self._trace_state, self._baggage)
