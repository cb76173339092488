"""Logging setup for the calendar tools server.

Call sites use plain ``logging.getLogger(__name__)``; ``configure_logging``
routes every stdlib record through a structlog ``ProcessorFormatter`` so the
console gets either readable text or JSON lines, and an optional log file
always gets JSON lines. Each record carries the server name and the active
OpenTelemetry trace/span ids.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path

import structlog
from opentelemetry import trace

_server_context: ContextVar[str | None] = ContextVar("server_name", default=None)

_ZERO_TRACE_ID = "0" * 32
_ZERO_SPAN_ID = "0" * 16

# Chatty third-party loggers held at WARNING whatever the root level is.
_NOISE_LOGGERS = (
    "mcp.server.lowlevel.server",
    "httpx",
    "httpcore",
)

_CONSOLE_TIME_FORMAT = {"json": "iso", "text": "%H:%M:%S"}


def set_server_context(name: str) -> None:
    _server_context.set(name)


def get_server_context() -> str | None:
    return _server_context.get()


def add_server_context(logger, method_name, event_dict: dict) -> dict:  # noqa: ARG001
    """Record which calendar server emitted the entry."""
    event_dict["server"] = _server_context.get()
    return event_dict


def add_otel_context(logger, method_name, event_dict: dict) -> dict:  # noqa: ARG001
    """Attach the current span's ids, zero-filled outside any span."""
    span_context = trace.get_current_span().get_span_context()
    if span_context and span_context.trace_id:
        event_dict["trace_id"] = f"{span_context.trace_id:032x}"
        event_dict["span_id"] = f"{span_context.span_id:016x}"
    else:
        event_dict["trace_id"] = _ZERO_TRACE_ID
        event_dict["span_id"] = _ZERO_SPAN_ID
    return event_dict


def _pre_chain(time_format: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt=time_format),
        add_server_context,
        add_otel_context,
        structlog.stdlib.ExtraAdder(),
    ]


def _formatter(
    renderer: structlog.types.Processor,
    pre_chain: list[structlog.types.Processor],
) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=pre_chain,
    )


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    log_file: Path | str | None = None,
    server_name: str | None = None,
) -> None:
    """Install structlog-backed handlers on the root logger.

    ``fmt`` is ``"text"`` or ``"json"``. Console output goes to stderr because
    stdout belongs to the stdio MCP transport. ``log_file`` parents are
    created as needed.
    """
    if server_name:
        set_server_context(server_name)

    pre_chain = _pre_chain(_CONSOLE_TIME_FORMAT.get(fmt, "%H:%M:%S"))
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(renderer, pre_chain))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(
            _formatter(structlog.processors.JSONRenderer(), _pre_chain("iso"))
        )
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    for name in _NOISE_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
