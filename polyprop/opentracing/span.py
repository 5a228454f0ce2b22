from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

from opentracing import Span as _Span

from .context import SpanContext, SPAN_ID, TRACE_ID

if TYPE_CHECKING:
    from .tracer import Tracer

TagValue = Union[str, bool, int, float]
TagDict = Dict[str, TagValue]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MICROSECOND = timedelta(microseconds=1)


def from_microseconds(microseconds: int) -> datetime:
    """ Convert microseconds since the epoch to an aware UTC datetime.

        Integer arithmetic only, so the conversion is exact. Negative or
        out-of-range input is not checked.
    """
    return EPOCH + timedelta(microseconds=microseconds)


def to_microseconds(moment: datetime) -> int:
    return (moment - EPOCH) // _ONE_MICROSECOND


def _check_tag(key: str, value: Any) -> None:
    if not isinstance(value, (str, bool, int, float)):
        raise TypeError("Supported tag value types are str, bool, int and "
                        "float, found {} for tag {!r}".format(type(value), key))


class Span(_Span):
    """ A span assembled by SpanBuilder.start().

        The operation name, parent and start time are fixed at start.
        Tags may be set at any time. Baggage keeps accepting items after the
        start; every change swaps in a new SpanContext so a reader
        (e.g. an injector on another thread) always sees one consistent
        snapshot. There is no span-level locking: a span is expected to be
        mutated by one thread of control at a time.
    """

    _context: SpanContext
    _parent: Optional[Union['Span', SpanContext]]
    _start_time: datetime
    _finish_time: Optional[datetime]
    _tags: TagDict

    def __init__(self,
                 tracer: 'Tracer',
                 operation_name: Optional[str],
                 context: SpanContext,
                 start_time: datetime,
                 parent: Optional[Union['Span', SpanContext]] = None,
                 tags: Optional[TagDict] = None) -> None:
        super(Span, self).__init__(tracer, context=context)
        self._operation_name = operation_name
        self._parent = parent
        self._start_time = start_time
        self._finish_time = None
        self._tags = dict(tags or {})

    @property
    def operation_name(self) -> Optional[str]:
        return self._operation_name

    @property
    def parent(self) -> Optional[Union['Span', SpanContext]]:
        return self._parent

    @property
    def context(self) -> SpanContext:
        return self._context

    @property
    def trace_state(self) -> Mapping[str, Any]:
        return self._context.trace_state

    @property
    def baggage(self) -> Mapping[str, str]:
        """ Read-only; change baggage with set_baggage_item() """
        return self._context.baggage

    @property
    def tags(self) -> TagDict:
        return self._tags

    @property
    def start_time(self) -> datetime:
        return self._start_time

    @property
    def start_timestamp(self) -> int:
        """ The start time in microseconds since the epoch """
        return to_microseconds(self._start_time)

    @property
    def finish_time(self) -> Optional[datetime]:
        return self._finish_time

    @property
    def duration(self) -> Optional[timedelta]:
        if self._finish_time is None:
            return None
        return self._finish_time - self._start_time

    def set_operation_name(self, operation_name: str) -> 'Span':
        raise RuntimeError("The operation name of a started span is fixed.")

    def set_tag(self, key: str, value: TagValue) -> 'Span':
        _check_tag(key, value)
        self._tags[key] = value
        return self

    def set_baggage_item(self, key: str, value: str) -> 'Span':
        self._context = self._context.with_baggage_item(key, value)
        return self

    def get_baggage_item(self, key: str) -> Optional[str]:
        return self._context.baggage.get(key)

    def finish(self, finish_time: Optional[int] = None) -> None:
        """ Record the end of the span.

            :param finish_time: microseconds since the epoch; defaults to now.
                Unlike opentracing.Span.finish(), which takes float seconds,
                this matches the unit of SpanBuilder.with_start_timestamp().
        """
        if self._finish_time is not None:
            raise RuntimeError("Span is already finished.")
        self._finish_time = (self.tracer.now() if finish_time is None
                             else from_microseconds(finish_time))

    def __repr__(self) -> str:
        return 'Span(operation_name={!r}, context={!r})'.format(
            self._operation_name, self._context)


class SpanBuilder(object):
    """ Accumulate the state of a span, then start() it exactly once.

        The default start time is sampled when the builder is created, not
        when start() is called.
    """

    def __init__(self, tracer: 'Tracer',
                 operation_name: Optional[str] = None) -> None:
        self._tracer = tracer
        self._operation_name = operation_name
        self._parent: Optional[Union[Span, SpanContext]] = None
        self._start_time = tracer.now()
        self._tags: TagDict = dict()
        self._trace_state: Dict[str, Any] = dict()
        self._baggage: Dict[str, str] = dict()
        self._started = False

    def _check_not_started(self) -> None:
        if self._started:
            raise RuntimeError("SpanBuilder has already been started.")

    def with_operation_name(self, operation_name: str) -> 'SpanBuilder':
        self._check_not_started()
        self._operation_name = operation_name
        return self

    def with_parent(self, parent: Union[Span, SpanContext]) -> 'SpanBuilder':
        self._check_not_started()
        if not isinstance(parent, (Span, SpanContext)):
            raise TypeError("parent must be a polyprop Span or SpanContext, "
                            "found {}".format(type(parent)))
        self._parent = parent
        return self

    def with_tag(self, key: str, value: TagValue) -> 'SpanBuilder':
        """ Add a tag; a later call with the same key wins, whatever the
            type of either value.
        """
        self._check_not_started()
        _check_tag(key, value)
        self._tags[key] = value
        return self

    def with_start_timestamp(self, microseconds: int) -> 'SpanBuilder':
        self._check_not_started()
        self._start_time = from_microseconds(microseconds)
        return self

    def with_trace_state(self, key: str, value: Any) -> 'SpanBuilder':
        self._check_not_started()
        self._trace_state[key] = value
        return self

    def with_baggage_item(self, key: str, value: str) -> 'SpanBuilder':
        self._check_not_started()
        self._baggage[key] = value
        return self

    @property
    def parent(self) -> Optional[Union[Span, SpanContext]]:
        return self._parent

    def start(self) -> Span:
        self._check_not_started()
        self._started = True

        parent_context = (self._parent.context
                          if isinstance(self._parent, Span)
                          else self._parent)

        trace_state: Dict[str, Any] = dict()
        baggage: Dict[str, str] = dict()
        trace_id = None
        if parent_context is not None:
            trace_id = parent_context.trace_id
            baggage.update(parent_context.baggage)

        ids = self._tracer.id_generator
        trace_state[TRACE_ID] = (ids.new_trace_id() if trace_id is None
                                 else trace_id)
        trace_state[SPAN_ID] = ids.new_span_id()
        trace_state.update(self._trace_state)
        baggage.update(self._baggage)

        return Span(self._tracer,
                    operation_name=self._operation_name,
                    context=SpanContext(trace_state, baggage),
                    start_time=self._start_time,
                    parent=self._parent,
                    tags=self._tags)
