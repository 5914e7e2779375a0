"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from vectordb_text.observability.context import LogContext, bind_span, current_log_context, set_log_context
from vectordb_text.observability.logging import JsonFormatter, configure_logging
from vectordb_text.observability.metrics import (
    ENCODE_LATENCY,
    ENCODE_REQUESTS,
    FIT_DOCUMENTS,
    PARAMS_OPERATIONS,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from vectordb_text.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "ENCODE_LATENCY",
    "ENCODE_REQUESTS",
    "FIT_DOCUMENTS",
    "PARAMS_OPERATIONS",
    "JsonFormatter",
    "LogContext",
    "bind_span",
    "configure_logging",
    "create_span",
    "current_log_context",
    "get_metrics",
    "get_metrics_content_type",
    "get_tracer",
    "init_tracing",
    "set_log_context",
    "track_latency",
]
