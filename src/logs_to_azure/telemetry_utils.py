import functools
from contextlib import nullcontext
from typing import Callable, Optional

from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, Tracer

from logs_to_azure import appender


def _tracer_for(func: Callable) -> Tracer:
    sdk = appender.installed_sdk()
    if sdk is not None:
        return sdk.get_tracer(func.__module__)
    return trace.get_tracer(func.__module__)


def observe(name: Optional[str] = None, tracer: Optional[Tracer] = None) -> Callable:
    """Wrap a callable inside an OpenTelemetry span.

    Without an explicit tracer the installed bridge SDK is used, falling back
    to the global tracer provider. A span is only started inside an already
    recording span; calls outside a trace run unwrapped.

    :param name: Span name to emit, defaults to the function's qualified name.
    :type name: str | None
    :param tracer: Tracer to start the span on.
    :type tracer: Tracer | None
    :return: Decorator that instruments the wrapped function.
    :rtype: Callable
    """

    def decorator(func: Callable) -> Callable:
        span_name = name or func.__qualname__

        @functools.wraps(func)
        def wraps(*args, **kwargs):
            if isinstance(trace.get_current_span(), NonRecordingSpan):
                span = nullcontext()
            else:
                span = (tracer or _tracer_for(func)).start_as_current_span(span_name)
            with span:
                return func(*args, **kwargs)

        return wraps

    return decorator
