"""OpenTelemetry tracing + structured logging for the resilient client.

Provides the Telemetry class as a lightweight facade over OTel's tracer and
a trace-aware logging adapter. Span helpers are exception-safe so
instrumentation cannot break a request.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from datetime import datetime

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

TRACER_NAME = "pdfgenai"

AttributeValue = str | bool | int | float


class SpanHandle:
    """Thin span wrapper that keeps OTel errors away from the caller."""

    def __init__(self, span: trace.Span) -> None:
        self._span = span

    def set_attribute(self, key: str, value: AttributeValue) -> None:
        try:
            self._span.set_attribute(key, value)
        except Exception:
            logger.debug("Failed to set span attribute %s", key, exc_info=True)

    def add_event(self, name: str, attributes: Mapping[str, AttributeValue] | None = None) -> None:
        try:
            self._span.add_event(name, attributes=dict(attributes or {}))
        except Exception:
            logger.debug("Failed to add span event %s", name, exc_info=True)

    def record_error(self, exc: BaseException) -> None:
        """Record *exc* on the span and mark the span as failed."""
        try:
            self._span.record_exception(exc)
            self._span.set_status(Status(StatusCode.ERROR, str(exc)))
        except Exception:
            logger.debug("Failed to record exception on span", exc_info=True)


class TraceLogAdapter(logging.LoggerAdapter):
    """LoggerAdapter that injects trace_id and span_id into every log record.

    Adapter-level ``extra`` values are merged under any per-call ``extra``.
    """

    def process(self, msg, kwargs):  # type: ignore[override]
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        ctx = trace.get_current_span().get_span_context()
        if ctx.is_valid:
            extra["trace_id"] = format(ctx.trace_id, "032x")
            extra["span_id"] = format(ctx.span_id, "016x")
        kwargs["extra"] = extra
        return msg, kwargs


class Telemetry:
    """Span factory + trace-aware logger handed to the client.

    Args:
        tracer: Any OTel tracer.
        log: Logger to wrap; defaults to the ``pdfgenai.client`` logger.
    """

    def __init__(self, tracer: trace.Tracer, log: logging.Logger | None = None) -> None:
        self._tracer = tracer
        self.log = TraceLogAdapter(log or logging.getLogger("pdfgenai.client"), {})

    @contextmanager
    def span(
        self, name: str, attributes: Mapping[str, AttributeValue] | None = None
    ) -> Generator[SpanHandle, None, None]:
        """Create an OTel span as a context manager.

        Exceptions leaving the block are not recorded automatically; call
        :meth:`SpanHandle.record_error` where the failure is known.

        Args:
            name: Span name (e.g. ``"upload_file"``).
            attributes: Initial span attributes.

        Yields:
            SpanHandle for setting attributes and recording errors.
        """
        with self._tracer.start_as_current_span(
            name,
            attributes=dict(attributes or {}),
            record_exception=False,
            set_status_on_exception=False,
        ) as otel_span:
            yield SpanHandle(otel_span)

    def with_logger(self, log: logging.Logger) -> Telemetry:
        """Same tracer, different logger."""
        return Telemetry(self._tracer, log)

    @classmethod
    def default(cls) -> Telemetry:
        """Use whatever tracer provider the process has installed globally."""
        return cls(trace.get_tracer(TRACER_NAME))

    @classmethod
    def for_testing(cls) -> tuple[Telemetry, InMemorySpanExporter]:
        """Create a Telemetry instance with an in-memory exporter for tests.

        Returns:
            ``(Telemetry, InMemorySpanExporter)``; call
            ``exporter.get_finished_spans()`` to assert span names,
            attributes and status.
        """
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return cls(provider.get_tracer(TRACER_NAME)), exporter

    @classmethod
    def noop(cls) -> Telemetry:
        """Spans are created but discarded."""
        return cls(TracerProvider().get_tracer(TRACER_NAME))


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


class _DefaultsFilter(logging.Filter):
    """Ensure trace_id and span_id are always present on log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "0" * 32  # type: ignore[attr-defined]
        if not hasattr(record, "span_id"):
            record.span_id = "0" * 16  # type: ignore[attr-defined]
        return True


_STRUCTURED_KEYS = ("operation", "attempt", "status_code", "file_id", "path", "purpose")


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: ``ts``, ``level``, ``logger``, ``trace``, ``span``, ``msg`` plus any
    of the client's structured fields present on the record.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "trace": getattr(record, "trace_id", "0" * 32),
            "span": getattr(record, "span_id", "0" * 16),
            "msg": record.getMessage(),
        }
        for key in _STRUCTURED_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: int = logging.WARNING, log_dir: str | None = None) -> None:
    """Configure the ``pdfgenai`` logger.

    Always attaches a console handler at *level*. With *log_dir*, also
    writes ``{log_dir}/pdfgenai-YYYYMMDD.log`` as JSON lines at DEBUG.
    Calling it twice does not add duplicate handlers.
    """
    root = logging.getLogger("pdfgenai")
    root.setLevel(logging.DEBUG)

    if not any(getattr(h, "_pdfgenai_console", False) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
        console._pdfgenai_console = True  # type: ignore[attr-defined]
        root.addHandler(console)
    for handler in root.handlers:
        if getattr(handler, "_pdfgenai_console", False):
            handler.setLevel(level)

    if log_dir is None:
        return
    if any(isinstance(h, logging.FileHandler) for h in root.handlers):
        return

    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, f"pdfgenai-{datetime.now().strftime('%Y%m%d')}.log")
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.addFilter(_DefaultsFilter())
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
