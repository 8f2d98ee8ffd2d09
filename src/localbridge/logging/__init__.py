"""Logging infrastructure for localbridge.

This module provides structured logging with JSON or text output and
per-request context tracking.
"""

from localbridge.logging.filters import (
    ContextFilter,
    clear_request_context,
    set_request_context,
    set_service_name,
)
from localbridge.logging.logger import CustomJsonFormatter, get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "CustomJsonFormatter",
    "ContextFilter",
    "set_request_context",
    "clear_request_context",
    "set_service_name",
]
