#!python3
import unittest
from datetime import datetime, timedelta, timezone
from typing import Iterator

import opentracing

from polyprop import Span, SpanContext, Tracer, TracerConfig
from polyprop.opentracing.context import SPAN_ID, TRACE_ID
from polyprop.opentracing.span import from_microseconds, to_microseconds


class SteppingClock(object):
    """ Every reading is one second later than the previous one """

    def __init__(self, start: datetime) -> None:
        self.readings = 0
        self._times: Iterator[datetime] = (
            start + timedelta(seconds=i) for i in range(1000))

    def __call__(self) -> datetime:
        self.readings += 1
        return next(self._times)


T0 = datetime(2019, 1, 19, 12, 0, tzinfo=timezone.utc)


class TestSpanBuilder(unittest.TestCase):

    def setUp(self) -> None:
        self.clock = SteppingClock(T0)
        self.tracer = Tracer(TracerConfig(), clock=self.clock)

    def testStartTimestampPrecision(self) -> None:
        span = (self.tracer.build_span('op')
                .with_start_timestamp(1_500_000_123)
                .start())
        assert span.start_timestamp == 1_500_000_123, span.start_timestamp
        assert span.start_time == datetime(1970, 1, 1, 0, 25, 0, 123,
                                           tzinfo=timezone.utc)

    def testTimestampConversionIsExactForLargeValues(self) -> None:
        microseconds = 1_548_000_000_123_457
        assert to_microseconds(from_microseconds(microseconds)) == microseconds

    def testDefaultStartIsSampledAtBuilderCreation(self) -> None:
        builder = self.tracer.build_span('op')
        assert self.clock.readings == 1
        builder.with_tag('k', 'v')
        span = builder.start()
        assert self.clock.readings == 1
        assert span.start_time == T0, span.start_time

    def testBuilderStateIsCopied(self) -> None:
        span = (self.tracer.build_span('op')
                .with_tag('http.method', 'GET')
                .with_tag('error', False)
                .with_tag('http.status_code', 200)
                .with_baggage_item('user', '42')
                .with_trace_state('sampled', '1')
                .start())
        assert span.operation_name == 'op'
        assert span.tags == {'http.method': 'GET', 'error': False,
                             'http.status_code': 200}, span.tags
        assert span.baggage == {'user': '42'}, span.baggage
        assert span.trace_state['sampled'] == '1'
        assert span.parent is None

    def testTagTypeIsolation(self) -> None:
        span = (self.tracer.build_span('op')
                .with_tag('k', 's')
                .with_tag('k', 5)
                .start())
        assert span.tags == {'k': 5}, span.tags

        span = (self.tracer.build_span('op')
                .with_tag('k', 5)
                .with_tag('k', 's')
                .start())
        assert span.tags == {'k': 's'}, span.tags

    def testBooleanTagsStayBoolean(self) -> None:
        span = self.tracer.build_span('op').with_tag('flag', True).start()
        assert span.tags['flag'] is True

    def testUnsupportedTagValue(self) -> None:
        with self.assertRaises(TypeError):
            self.tracer.build_span('op').with_tag('k', b'bytes')  # type: ignore
        with self.assertRaises(TypeError):
            self.tracer.build_span('op').with_tag('k', None)  # type: ignore

    def testBuilderIsSingleUse(self) -> None:
        builder = self.tracer.build_span('op')
        builder.start()
        with self.assertRaises(RuntimeError):
            builder.start()
        with self.assertRaises(RuntimeError):
            builder.with_tag('k', 'v')

    def testNewTraceGetsFreshIds(self) -> None:
        first = self.tracer.build_span('first').start()
        second = self.tracer.build_span('second').start()
        assert len(first.trace_state[TRACE_ID]) == 32
        assert len(first.trace_state[SPAN_ID]) == 16
        assert first.trace_state[TRACE_ID] != second.trace_state[TRACE_ID]
        assert first.trace_state[SPAN_ID] != second.trace_state[SPAN_ID]

    def testSeededTraceStateOverridesGeneratedIds(self) -> None:
        span = (self.tracer.build_span('op')
                .with_trace_state(TRACE_ID, 'abc')
                .with_trace_state(SPAN_ID, '1')
                .start())
        assert span.trace_state == {TRACE_ID: 'abc', SPAN_ID: '1'}

    def testChildInheritsTraceIdAndBaggage(self) -> None:
        parent = (self.tracer.build_span('parent')
                  .with_baggage_item('user', '42')
                  .start())
        child = (self.tracer.build_span('child')
                 .with_parent(parent)
                 .with_baggage_item('tenant', 'acme')
                 .start())
        assert child.parent is parent
        assert child.trace_state[TRACE_ID] == parent.trace_state[TRACE_ID]
        assert child.trace_state[SPAN_ID] != parent.trace_state[SPAN_ID]
        assert child.baggage == {'user': '42', 'tenant': 'acme'}
        assert parent.baggage == {'user': '42'}

    def testParentMayBeAContext(self) -> None:
        context = SpanContext({TRACE_ID: 'abc', SPAN_ID: '1'}, {'user': '42'})
        child = self.tracer.build_span('child').with_parent(context).start()
        assert child.parent is context
        assert child.trace_state[TRACE_ID] == 'abc'
        assert child.baggage == {'user': '42'}

    def testForeignParentIsRejected(self) -> None:
        foreign = opentracing.Tracer().start_span('x')
        builder = self.tracer.build_span('child')
        with self.assertRaises(TypeError):
            builder.with_parent(foreign)  # type: ignore
        with self.assertRaises(TypeError):
            builder.with_parent(foreign.context)  # type: ignore
        assert builder.parent is None
        assert builder.start().parent is None

    def testStartSpanShorthand(self) -> None:
        parent = self.tracer.start_span('parent')
        span = self.tracer.start_span('child', child_of=parent,
                                      tags={'component': 'test'},
                                      start_time=1_500_000_123)
        assert span.parent is parent
        assert span.tags == {'component': 'test'}
        assert span.start_timestamp == 1_500_000_123


class TestSpan(unittest.TestCase):

    def setUp(self) -> None:
        self.clock = SteppingClock(T0)
        self.tracer = Tracer(TracerConfig(), clock=self.clock)
        self.span = self.tracer.build_span('op').start()

    def testOperationNameIsFixed(self) -> None:
        with self.assertRaises(RuntimeError):
            self.span.set_operation_name('other')
        assert self.span.operation_name == 'op'

    def testTagsCanBeSetAfterStart(self) -> None:
        assert self.span.set_tag('retries', 3) is self.span
        assert self.span.tags == {'retries': 3}
        with self.assertRaises(TypeError):
            self.span.set_tag('payload', object())  # type: ignore

    def testBaggageMutationSwapsTheContext(self) -> None:
        snapshot = self.span.context
        self.span.set_baggage_item('user', '42')
        assert self.span.get_baggage_item('user') == '42'
        assert self.span.get_baggage_item('missing') is None
        assert snapshot.baggage == {}, snapshot.baggage
        assert self.span.context is not snapshot
        assert self.span.context.trace_state == snapshot.trace_state

    def testReadOnlyViewsProtectSnapshots(self) -> None:
        span = (self.tracer.build_span('op')
                .with_baggage_item('tenant', 'acme')
                .start())
        snapshot = span.context
        span_id = snapshot.span_id
        with self.assertRaises(TypeError):
            span.baggage['user'] = '42'  # type: ignore
        with self.assertRaises(TypeError):
            span.trace_state[SPAN_ID] = 'hijacked'  # type: ignore
        with self.assertRaises(TypeError):
            snapshot.baggage['user'] = '42'  # type: ignore
        assert dict(snapshot.baggage) == {'tenant': 'acme'}, snapshot
        assert snapshot.trace_state[SPAN_ID] == span_id, snapshot

        span.set_baggage_item('user', '42')
        assert dict(span.baggage) == {'tenant': 'acme', 'user': '42'}
        assert dict(snapshot.baggage) == {'tenant': 'acme'}, snapshot

    def testFinish(self) -> None:
        self.span.finish()
        assert self.span.duration == timedelta(seconds=1), self.span.duration
        with self.assertRaises(RuntimeError):
            self.span.finish()

    def testFinishWithExplicitTimestamp(self) -> None:
        span = (self.tracer.build_span('op')
                .with_start_timestamp(1_000_000)
                .start())
        span.finish(3_500_000)
        assert span.duration == timedelta(microseconds=2_500_000)

    def testUnfinishedSpanHasNoDuration(self) -> None:
        assert self.span.finish_time is None
        assert self.span.duration is None

    def testContextManagerFinishesAndTagsErrors(self) -> None:
        span = self.tracer.build_span('op').start()
        with self.assertRaises(ValueError):
            with span:
                raise ValueError("boom")
        assert span.finish_time is not None
        assert span.tags['error'] is True, span.tags
        assert isinstance(span, Span)


if __name__ == '__main__':
    unittest.main()
