"""Logging filters for context injection.

This module provides filters that inject context variables into log records,
so every line written while a tool call is in flight carries that call's
request id and tool name.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

from localbridge.__version__ import __version__

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
tool_name_var: ContextVar[Optional[str]] = ContextVar("tool_name", default=None)
service_name_var: ContextVar[str] = ContextVar("service_name", default="mcp-localbridge")


class ContextFilter(logging.Filter):
    """Logging filter that adds context variables to log records.

    Context variables follow asyncio tasks, so concurrent tool calls keep
    their own values.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context variables to the log record.

        Args:
            record: Log record to enhance

        Returns:
            Always True (doesn't filter out any records)
        """
        setattr(record, "request_id", request_id_var.get())
        setattr(record, "tool_name", tool_name_var.get())
        setattr(record, "service", service_name_var.get())
        setattr(record, "version", __version__)

        return True


def set_service_name(name: str) -> None:
    service_name_var.set(name)


def set_request_context(
    request_id: Optional[str] = None,
    tool_name: Optional[str] = None,
) -> None:
    """Set request context variables."""
    if request_id is not None:
        request_id_var.set(request_id)
    if tool_name is not None:
        tool_name_var.set(tool_name)


def clear_request_context() -> None:
    """Clear all request context variables."""
    request_id_var.set(None)
    tool_name_var.set(None)
