import pytest
from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags

from gcf_log_formatter.formatter import StructuredLogFormatter

TRACE_ID = 0x4BF92F3577B34DA6A3CE929D0E0E4736
SPAN_ID = 0x00F067AA0BA902B7


@pytest.fixture
def formatter():
    return StructuredLogFormatter()


@pytest.fixture
def span_context():
    return SpanContext(
        trace_id=TRACE_ID,
        span_id=SPAN_ID,
        is_remote=False,
        trace_flags=TraceFlags(TraceFlags.SAMPLED),
    )


@pytest.fixture
def traced_context(span_context):
    """An OpenTelemetry context with a valid active span."""
    return trace.set_span_in_context(NonRecordingSpan(span_context))
