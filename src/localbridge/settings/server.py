"""Server, logging and transport settings."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

_LOG_LEVELS = ("debug", "info", "warn", "error")


class ServerSettings(BaseModel):
    name: str = Field(default="mcp-localbridge", description="Server name announced to MCP clients")
    version: str = Field(default="1.0.0", description="Server version announced to MCP clients")
    request_timeout: int = Field(default=30, gt=0, description="Overall seconds allowed per tool call")
    instructions: str = Field(
        default=(
            "Read-only access to configured MySQL, PostgreSQL and Redis instances. "
            "Call db_list_databases first to discover instance names."
        ),
        description="Instructions announced to MCP clients"
    )


class LoggingSettings(BaseModel):
    """Logging configuration.

    ``output`` is ``stdout``, ``stderr`` or a file path. When the stdio
    transport is enabled stdout carries protocol frames, so the server
    redirects logging to stderr.
    """

    level: str = Field(default="info", description="debug, info, warn or error")
    format: Literal["json", "text"] = Field(default="json")
    output: str = Field(default="stderr", min_length=1)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"invalid log level: {v}. Must be one of: {', '.join(_LOG_LEVELS)}")
        return level


class StdioTransportSettings(BaseModel):
    enabled: bool = True


class _NetworkTransportSettings(BaseModel):
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8080

    @model_validator(mode="after")
    def validate_port(self):
        if self.enabled and not 1 <= self.port <= 65535:
            raise ValueError(f"invalid port: {self.port}")
        return self


class HttpTransportSettings(_NetworkTransportSettings):
    """Streamable HTTP transport."""

    port: int = 8080
    endpoint_path: str = Field(default="/mcp")
    stateless: bool = Field(default=False, description="Serve without per-client sessions")


class SseTransportSettings(_NetworkTransportSettings):
    port: int = 8081
    sse_endpoint: str = Field(default="/sse")
    message_endpoint: str = Field(default="/messages/")


class TransportsSettings(BaseModel):
    stdio: StdioTransportSettings = Field(default_factory=StdioTransportSettings)
    http: HttpTransportSettings = Field(default_factory=HttpTransportSettings)
    sse: SseTransportSettings = Field(default_factory=SseTransportSettings)

    @property
    def any_enabled(self) -> bool:
        return self.stdio.enabled or self.http.enabled or self.sse.enabled
