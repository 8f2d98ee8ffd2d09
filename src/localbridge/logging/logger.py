"""Core logging setup and configuration.

This module wires structured JSON (or plain text) logging with per-request
context and OpenTelemetry correlation while keeping configuration declarative
via ``logging.config.dictConfig``.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Set

from opentelemetry import trace


_LEVEL_ALIASES = {"WARN": "WARNING"}

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _build_reserved_keys() -> Set[str]:
    """Collect standard ``LogRecord`` attributes to avoid duplicating them."""
    probe = logging.LogRecord(
        name="localbridge.probe",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="",
        args=(),
        exc_info=None,
    )
    reserved = set(probe.__dict__.keys())
    reserved.update({"asctime", "message"})
    return reserved


_RESERVED_LOG_RECORD_KEYS = _build_reserved_keys()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def normalize_level(level: str) -> str:
    """Map configuration level names (``warn``) onto ``logging`` names."""
    upper = level.upper()
    return _LEVEL_ALIASES.get(upper, upper)


class CustomJsonFormatter(logging.Formatter):
    """JSON formatter that enriches log entries with context and trace data."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {}

        for key, value in record.__dict__.items():
            if key not in _RESERVED_LOG_RECORD_KEYS and key not in log_record:
                log_record[key] = value

        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            log_record["trace_id"] = format(span_context.trace_id, "032x")
            log_record["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def _handler_config(output: str) -> Dict[str, Any]:
    if output in ("stdout", "stderr"):
        return {
            "class": "logging.StreamHandler",
            "stream": f"ext://sys.{output}",
        }
    return {
        "class": "logging.FileHandler",
        "filename": output,
        "mode": "a",
        "encoding": "utf-8",
    }


def setup_logging(level: str = "INFO", fmt: str = "json", output: str = "stderr") -> None:
    """Configure structured logging backed by ``logging.config.dictConfig``.

    Args:
        level: Base log level (debug, info, warn, error; case-insensitive).
        fmt: ``json`` for one JSON object per line, ``text`` for plain lines.
        output: ``stdout``, ``stderr`` or a file path opened in append mode.
            stdout must not be used while the stdio transport is serving,
            since it carries protocol frames.
    """
    level = normalize_level(level)
    handler = _handler_config(output)
    handler.update({
        "level": level,
        "formatter": "localbridge_json" if fmt == "json" else "localbridge_text",
        "filters": ["localbridge_context"],
    })

    config_dict: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "localbridge_json": {
                "()": "localbridge.logging.logger.CustomJsonFormatter",
            },
            "localbridge_text": {
                "format": TEXT_FORMAT,
            },
        },
        "filters": {
            "localbridge_context": {
                "()": "localbridge.logging.filters.ContextFilter",
            }
        },
        "handlers": {
            "main": handler,
        },
        "root": {
            "level": level,
            "handlers": ["main"],
        },
    }

    logging.config.dictConfig(config_dict)
