"""OpenTelemetry tracing helpers for mcpbox.

Provides a thin wrapper around the OpenTelemetry API so the rest of the
codebase can call ``get_tracer()`` without caring whether the SDK is
installed.  When the SDK is *not* configured the API returns no-op
implementations.

Usage::

    from mcpbox.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("mcpbox.operation") as span:
        span.set_attribute("key", "value")

To activate real tracing, call :func:`configure_telemetry` once at startup
(requires the ``otel`` extra: ``pip install mcpbox[otel]``).  Spans are
exported to **stderr**; stdout carries the protocol.
"""

from __future__ import annotations

import sys
from typing import Any

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Semantic attribute keys used throughout mcpbox instrumentation
# ---------------------------------------------------------------------------

ATTR_RPC_METHOD = "mcpbox.rpc.method"
ATTR_RPC_ID = "mcpbox.rpc.id"
ATTR_RPC_ERROR_CODE = "mcpbox.rpc.error_code"
ATTR_TOOL_NAME = "mcpbox.tool.name"

_INSTRUMENTATION_NAME = "mcpbox"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*.

    If the OpenTelemetry SDK has not been configured the returned tracer
    is a no-op.
    """
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(*, service_name: str = "mcpbox") -> None:
    """Configure OpenTelemetry tracing with a stderr console exporter.

    Raises
    ------
    ImportError
        If the ``opentelemetry-sdk`` package is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import SimpleSpanProcessor
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install mcpbox[otel]"
        )
        raise ImportError(msg) from exc

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    _add_console_exporter(provider, SimpleSpanProcessor)
    trace.set_tracer_provider(provider)


def _add_console_exporter(provider: Any, processor_cls: Any) -> None:
    """Attach the console exporter, writing to stderr."""
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    provider.add_span_processor(processor_cls(ConsoleSpanExporter(out=sys.stderr)))
