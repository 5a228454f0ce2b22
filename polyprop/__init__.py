from .config import TracerConfig, get_config  # noqa
from .opentracing.context import SpanContext, SPAN_ID, TRACE_ID  # noqa
from .opentracing.span import Span, SpanBuilder, TagValue, TagDict  # noqa
from .opentracing.tracer import Tracer  # noqa
from .propagation.carriers import HTTPHeaders  # noqa
from .propagation.propagator import Injector, Extractor, Propagator  # noqa
from .propagation.registry import CodecRegistry, NoCodecRegistered  # noqa
