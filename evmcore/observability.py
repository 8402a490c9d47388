"""
evmcore Observability

Structured logging and lightweight tracing for the engine. Every log event
carries the correlation/trace/span identifiers of the current context, the
engine layer that emitted it, and free-form structured context.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                   Engine / Handlers                      │
    │  logger.warning("msg", pc=x)     with tracer.span(...)   │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                  CoreLogger / Tracer                     │
    │  Context propagation, correlation IDs, structured data  │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                  StructuredHandler                       │
    │         JSON lines or plain text on stderr               │
    └─────────────────────────────────────────────────────────┘

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

# Context variables for run-scoped data
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
span_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "span_id", default=""
)
trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "trace_id", default=""
)

_internal = logging.getLogger("evmcore.observability")


class LogLevel(Enum):
    """Log severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Layer(Enum):
    """Engine layers for categorization."""
    ENGINE = "engine"
    DISPATCH = "dispatch"
    MEMORY = "memory"
    STORAGE = "storage"
    CONFIG = "config"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    trace_id: str = ""
    span_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def to_text(self) -> str:
        parts = [self.timestamp, self.level.upper(), self.logger, self.message]
        if self.error_code:
            parts.append(f"error_code={self.error_code}")
        if self.duration_ms is not None:
            parts.append(f"duration_ms={self.duration_ms:.2f}")
        parts.extend(f"{k}={v}" for k, v in sorted(self.context.items()))
        text = " ".join(str(p) for p in parts)
        if self.exception:
            text += "\n" + self.exception
        return text


# =============================================================================
# TRACING
# =============================================================================

@dataclass
class Span:
    """A timed unit of work, e.g. one engine run."""
    trace_id: str
    span_id: str
    parent_span_id: str = ""
    name: str = ""
    layer: str = ""
    start_time: float = field(default_factory=time.monotonic)
    end_time: Optional[float] = None
    status: str = "ok"
    attributes: Dict[str, Any] = field(default_factory=dict)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_status(self, status: str, message: str = "") -> None:
        self.status = status
        if message:
            self.attributes["status_message"] = message

    def end(self) -> None:
        if self.end_time is None:
            self.end_time = time.monotonic()

    @property
    def duration_ms(self) -> float:
        end = self.end_time or time.monotonic()
        return (end - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_span_id": self.parent_span_id,
            "name": self.name,
            "layer": self.layer,
            "duration_ms": round(self.duration_ms, 2),
            "status": self.status,
            "attributes": self.attributes,
        }


class SpanContext:
    """Context manager for spans."""

    def __init__(self, tracer: "Tracer", name: str, layer: Layer, **attributes: Any):
        self.tracer = tracer
        self.name = name
        self.layer = layer
        self.attributes = attributes
        self.span: Optional[Span] = None
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> Span:
        self.span = self.tracer.start_span(self.name, self.layer, **self.attributes)
        self._token = span_id_var.set(self.span.span_id)
        return self.span

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.span:
            if exc_type:
                self.span.set_status("error", str(exc_val))
                self.span.set_attribute("exception_type", exc_type.__name__)
            self.tracer.end_span(self.span)
        if self._token:
            span_id_var.reset(self._token)


class Tracer:
    """Creates spans and hands finished ones to exporters."""

    def __init__(self, service_name: str = "evmcore"):
        self.service_name = service_name
        self._active: Dict[str, Span] = {}
        self._lock = threading.RLock()
        self._exporters: List[Callable[[Span], None]] = []

    def add_exporter(self, exporter: Callable[[Span], None]) -> None:
        self._exporters.append(exporter)

    def remove_exporter(self, exporter: Callable[[Span], None]) -> None:
        if exporter in self._exporters:
            self._exporters.remove(exporter)

    def start_trace(self) -> str:
        """Start a new trace and return its ID."""
        trace_id = uuid.uuid4().hex
        trace_id_var.set(trace_id)
        return trace_id

    def start_span(self, name: str, layer: Layer, **attributes: Any) -> Span:
        trace_id = trace_id_var.get() or self.start_trace()
        span = Span(
            trace_id=trace_id,
            span_id=uuid.uuid4().hex[:16],
            parent_span_id=span_id_var.get(),
            name=name,
            layer=layer.value,
            attributes=attributes,
        )
        with self._lock:
            self._active[span.span_id] = span
        return span

    def end_span(self, span: Span) -> None:
        """End and export a span."""
        span.end()
        with self._lock:
            self._active.pop(span.span_id, None)

        for exporter in list(self._exporters):
            try:
                exporter(span)
            except Exception:
                # A broken exporter must not fail the traced work.
                _internal.exception("Span exporter %r failed", exporter)

    def active_spans(self) -> List[Span]:
        with self._lock:
            return list(self._active.values())

    def span(self, name: str, layer: Layer, **attributes: Any) -> SpanContext:
        return SpanContext(self, name, layer, **attributes)


# =============================================================================
# LOGGING
# =============================================================================

class StructuredHandler(logging.Handler):
    """Logging handler that writes one JSON object (or text line) per record."""

    def __init__(self, stream: Any = None, fmt: str = "json"):
        super().__init__()
        if fmt not in ("json", "text"):
            raise ValueError(f"Unknown log format: {fmt}")
        self.stream = stream or sys.stderr
        self.fmt = fmt

    def build_event(self, record: logging.LogRecord) -> LogEvent:
        event = LogEvent(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname.lower(),
            logger=record.name,
            message=record.getMessage(),
            correlation_id=correlation_id_var.get(),
            trace_id=trace_id_var.get(),
            span_id=span_id_var.get(),
            layer=getattr(record, "layer", ""),
            operation=getattr(record, "operation", ""),
            duration_ms=getattr(record, "duration_ms", None),
            error_code=getattr(record, "error_code", ""),
            context=getattr(record, "context", {}),
        )
        if record.exc_info:
            event.exception = "".join(traceback.format_exception(*record.exc_info))
        return event

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = self.build_event(record)
            line = event.to_json() if self.fmt == "json" else event.to_text()
            self.stream.write(line + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class CoreLogger:
    """
    Structured logger for engine components.

    Includes correlation IDs, trace context and layer information in all
    log events. Keyword arguments become the event's structured context.
    """

    def __init__(
        self,
        name: str,
        layer: Layer,
        level: LogLevel = LogLevel.INFO,
        fmt: str = "json",
    ):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"evmcore.{layer.value}.{name}")
        self._logger.setLevel(getattr(logging, level.value.upper()))

        if not any(isinstance(h, StructuredHandler) for h in self._logger.handlers):
            self._logger.addHandler(StructuredHandler(fmt=fmt))

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def is_enabled_for(self, level: LogLevel) -> bool:
        return self._logger.isEnabledFor(getattr(logging, level.value.upper()))

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)


def generate_correlation_id() -> str:
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


# Global tracer instance
_tracer: Optional[Tracer] = None


def get_tracer() -> Tracer:
    global _tracer
    if _tracer is None:
        _tracer = Tracer()
    return _tracer


def get_logger(name: str, layer: Layer) -> CoreLogger:
    """Get a logger configured from the observability config section."""
    from evmcore.config import get_config

    obs = get_config().observability
    return CoreLogger(name, layer, LogLevel(obs.log_level.get()), obs.log_format.get())
