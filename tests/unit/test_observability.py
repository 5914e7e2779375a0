"""Unit tests for observability module."""

import json
import logging
from pathlib import Path
import sys

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
import pytest

from vectordb_text.bm25 import BM25Encoder
from vectordb_text.errors import PersistenceError
from vectordb_text.observability import (
    ENCODE_LATENCY,
    ENCODE_REQUESTS,
    FIT_DOCUMENTS,
    PARAMS_OPERATIONS,
    JsonFormatter,
    bind_span,
    configure_logging,
    create_span,
    current_log_context,
    get_metrics,
    get_metrics_content_type,
    init_tracing,
    metrics as metrics_module,
    set_log_context,
    tracing as tracing_module,
    track_latency,
)
from vectordb_text.tokenizer import JiebaTokenizer, TokenizerParams


def _record(msg="test message", level=logging.INFO, name="test", exc_info=None):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture
def span_exporter():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    tracing_module._tracer_holder["tracer"] = provider.get_tracer("test")
    return exporter


@pytest.mark.unit
class TestJsonFormatter:
    """Tests for structured JSON logging."""

    def test_format_includes_trace_context(self):
        set_log_context("a" * 32, "b" * 16)
        data = json.loads(JsonFormatter().format(_record(name="vectordb_text.bm25")))

        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["trace_id"] == "a" * 32
        assert data["span_id"] == "b" * 16
        assert data["component"] == "bm25"
        assert "operation" not in data
        assert "timestamp" in data

    def test_format_includes_bound_operation(self):
        with bind_span("bm25.fit_corpus", span_id="c" * 16):
            data = json.loads(JsonFormatter().format(_record()))
        assert data["operation"] == "bm25.fit_corpus"
        assert data["span_id"] == "c" * 16

        after = json.loads(JsonFormatter().format(_record()))
        assert "operation" not in after
        assert after["trace_id"] == data["trace_id"]

    def test_format_includes_extra_fields(self):
        record = _record()
        record.doc_count = 40
        record.path = Path("/tmp/params.json")

        data = json.loads(JsonFormatter().format(record))

        assert data["doc_count"] == 40
        assert data["path"] == "/tmp/params.json"
        assert "pathname" not in data

    def test_redacts_sensitive_keys(self):
        record = _record()
        record.api_key = "secret-value"
        data = json.loads(JsonFormatter().format(record))
        assert data["api_key"] == "[REDACTED]"

    def test_truncates_long_values(self):
        record = _record(msg="x" * 5000)
        record.detail = "y" * 1000
        data = json.loads(JsonFormatter().format(record))
        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3
        assert len(data["detail"]) == JsonFormatter.MAX_VALUE_LEN + 3

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in data["exception"]

    def test_generates_trace_context_when_missing(self):
        ctx = current_log_context()
        assert len(ctx.trace_id) == 32
        assert len(ctx.span_id) == 16
        assert current_log_context() is ctx


@pytest.mark.unit
class TestConfigureLogging:
    def test_json_output(self):
        configure_logging(level="debug", json_output=True, logger_levels={"vectordb_text.tokenizer": "warning"})
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("jieba").level == logging.WARNING
        assert logging.getLogger("vectordb_text.tokenizer").level == logging.WARNING

    def test_plain_output(self):
        configure_logging(level="bogus", json_output=False)
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)


@pytest.mark.unit
class TestTracing:
    def test_init_tracing_sets_resource(self):
        provider = init_tracing("test-service", {"service.version": "1.0.0"})
        assert isinstance(provider, TracerProvider)
        assert provider.resource.attributes["service.name"] == "test-service"
        assert provider.resource.attributes["service.version"] == "1.0.0"

    def test_get_tracer_initializes_when_missing(self):
        tracing_module._tracer_holder["tracer"] = None
        assert tracing_module.get_tracer() is not None

    def test_create_span_records_attributes_and_span_id(self, span_exporter):
        with create_span("unit.test", attributes={"k": "v"}) as span:
            span_id = format(span.get_span_context().span_id, "016x")
            ctx = current_log_context()
            assert ctx.span_id == span_id
            assert ctx.operation == "unit.test"

        assert current_log_context().operation == ""

        (finished,) = span_exporter.get_finished_spans()
        assert finished.name == "unit.test"
        assert finished.attributes["k"] == "v"

    def test_create_span_marks_errors(self, span_exporter):
        with pytest.raises(RuntimeError), create_span("unit.error"):
            raise RuntimeError("boom")

        (finished,) = span_exporter.get_finished_spans()
        assert finished.status.status_code is StatusCode.ERROR
        assert [event.name for event in finished.events] == ["exception"]

    def test_encoder_operations_are_traced(self, span_exporter, tmp_path: Path):
        encoder = BM25Encoder(tokenizer=JiebaTokenizer(TokenizerParams(stop_words=False)))
        encoder.fit_corpus(["a b", "a c c"])
        encoder.download_params(tmp_path / "params.json")
        encoder.set_params(tmp_path / "params.json")

        names = [span.name for span in span_exporter.get_finished_spans()]
        assert names == ["bm25.fit_corpus", "bm25.download_params", "bm25.set_params"]


@pytest.mark.unit
class TestMetrics:
    def test_track_latency_observes(self):
        before = metrics_module._ENCODE_LATENCY_PROM.labels(side="unit")._sum.get()
        with track_latency(ENCODE_LATENCY, side="unit"):
            pass
        assert metrics_module._ENCODE_LATENCY_PROM.labels(side="unit")._sum.get() >= before

    def test_encoder_updates_counters(self, tmp_path: Path):
        encode_before = metrics_module._ENCODE_REQUESTS_PROM.labels(side="query")._value.get()
        fit_before = metrics_module._FIT_DOCUMENTS_PROM.labels(outcome="skipped")._value.get()
        load_before = metrics_module._PARAMS_OPERATIONS_PROM.labels(operation="load", status="error")._value.get()

        encoder = BM25Encoder(tokenizer=JiebaTokenizer(TokenizerParams(stop_words=False)))
        encoder.fit_corpus(["a b", ""])
        encoder.encode_queries(["a", "b"])
        with pytest.raises(PersistenceError):
            encoder.set_params(tmp_path / "missing.json")

        assert metrics_module._ENCODE_REQUESTS_PROM.labels(side="query")._value.get() == encode_before + 2
        assert metrics_module._FIT_DOCUMENTS_PROM.labels(outcome="skipped")._value.get() == fit_before + 1
        assert (
            metrics_module._PARAMS_OPERATIONS_PROM.labels(operation="load", status="error")._value.get()
            == load_before + 1
        )

    def test_bridge_labels(self):
        ENCODE_REQUESTS.labels(side="document").inc()
        FIT_DOCUMENTS.labels(outcome="fitted").inc(3)
        PARAMS_OPERATIONS.labels(operation="save", status="success").inc()

        output = get_metrics().decode("utf-8")
        assert "vectordb_text_encode_requests_total" in output
        assert "vectordb_text_fit_documents_total" in output
        assert "vectordb_text_params_operations_total" in output

    def test_unknown_metric_kind(self):
        bridge = metrics_module.MetricBridge(
            metrics_module._ENCODE_REQUESTS_PROM,
            otel_name="bogus",
            otel_description="bogus",
            otel_kind="gauge",
        )
        with pytest.raises(ValueError, match="Unknown metric kind"):
            bridge.labels(side="unit").inc()

    def test_content_type(self):
        assert get_metrics_content_type().startswith("text/plain")
