"""MCP server assembly.

``LocalBridgeServer`` owns the connected repositories and Redis clients,
registers every tool on a ``FastMCP`` application and runs the enabled
transports.

Each tool call runs under:
    - a fresh request id and the tool name in the logging context
    - an OpenTelemetry span named ``localbridge.tool.<name>``
    - the ``server.request_timeout`` deadline
    - conversion of ``LocalBridgeError`` into an MCP tool error whose text
      is the error string
"""

import asyncio
import functools
import inspect
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from opentelemetry.trace import SpanKind

from localbridge.cache import RedisClient, close_redis_clients, connect_redis_clients
from localbridge.common.exceptions import LocalBridgeError, timeout_error
from localbridge.insights import (
    AnalyticsHandler,
    IntrospectionHandler,
    MetadataHandler,
    RelationshipHandler,
    SemanticSummaryHandler,
)
from localbridge.logging import clear_request_context, get_logger, set_request_context
from localbridge.repositories import BaseRepository, close_repositories, connect_repositories
from localbridge.settings import LocalBridgeSettings
from localbridge.telemetry import get_tracer
from localbridge.tools import DBToolsHandler, RedisToolsHandler
from localbridge.transports import serve_transports

logger = get_logger(__name__)

ToolHandler = Callable[..., Awaitable[str]]


class LocalBridgeServer:
    """The mcp-localbridge service.

    Example:
        >>> server = LocalBridgeServer(load_settings("config/config.yaml"))
        >>> await server.run()
    """

    def __init__(self, settings: LocalBridgeSettings):
        self.settings = settings
        self.repositories: Dict[str, BaseRepository] = {}
        self.redis_clients: Dict[str, RedisClient] = {}
        self.app: Optional[FastMCP] = None

    async def initialize(self) -> None:
        """Connect databases (all must succeed) and Redis (best effort)."""
        self.repositories = await connect_repositories(
            self.settings.databases,
            default_timeout=self.settings.tools.db.query_timeout,
        )
        self.redis_clients = await connect_redis_clients(self.settings.redis)
        logger.info(
            "Backends connected",
            extra={"databases": sorted(self.repositories), "redis_instances": sorted(self.redis_clients)},
        )

    def tool_handlers(self) -> List[Tuple[str, ToolHandler]]:
        tools = self.settings.tools
        db_tools = DBToolsHandler(self.repositories, tools.db)
        redis_tools = RedisToolsHandler(self.redis_clients, tools.redis)
        introspection = IntrospectionHandler(self.repositories, self.redis_clients, tools.insights.introspection)
        summary = SemanticSummaryHandler(self.repositories, tools.insights.semantic_summary)
        relationship = RelationshipHandler(self.repositories, self.redis_clients, tools.insights.relationship)
        analytics = AnalyticsHandler(self.repositories, tools.insights.analytics)
        metadata = MetadataHandler(self.repositories)

        return [
            ("db_query", db_tools.db_query),
            ("db_count", db_tools.db_count),
            ("db_table_list", db_tools.db_table_list),
            ("db_table_preview", db_tools.db_table_preview),
            ("db_table_schema", db_tools.db_table_schema),
            ("db_list_databases", db_tools.db_list_databases),
            ("redis_get", redis_tools.redis_get),
            ("redis_set", redis_tools.redis_set),
            ("redis_scan", redis_tools.redis_scan),
            ("introspection", introspection.introspection),
            ("semantic_summary", summary.semantic_summary),
            ("relationship", relationship.relationship),
            ("analytics", analytics.analytics),
            ("metadata", metadata.metadata),
        ]

    def build_app(self) -> FastMCP:
        transports = self.settings.transports
        app = FastMCP(
            name=self.settings.server.name,
            instructions=self.settings.server.instructions,
            host=transports.http.host,
            sse_path=transports.sse.sse_endpoint,
            message_path=transports.sse.message_endpoint,
            streamable_http_path=transports.http.endpoint_path,
            stateless_http=transports.http.stateless,
        )

        handlers = self.tool_handlers()
        for name, handler in handlers:
            app.add_tool(
                self.wrap_tool(name, handler),
                name=name,
                description=inspect.cleandoc(handler.__doc__ or name),
            )

        logger.info("Registered MCP tools", extra={"tools": [name for name, _ in handlers]})
        self.app = app
        return app

    def wrap_tool(self, name: str, handler: ToolHandler) -> ToolHandler:
        """Wrap a handler with request context, tracing, the deadline and error conversion.

        ``functools.wraps`` keeps the handler's signature visible to FastMCP,
        which derives the tool's argument schema from it.
        """
        request_timeout = float(self.settings.server.request_timeout)
        tracer = get_tracer(__name__)

        @functools.wraps(handler)
        async def tool(*args: Any, **kwargs: Any) -> str:
            request_id = uuid.uuid4().hex
            set_request_context(request_id=request_id, tool_name=name)
            start_time = time.time()
            logger.info("Handling tool request", extra={"arguments": sorted(kwargs)})

            try:
                with tracer.start_as_current_span(f"localbridge.tool.{name}", kind=SpanKind.SERVER) as span:
                    span.set_attribute("mcp.tool.name", name)
                    span.set_attribute("localbridge.request_id", request_id)
                    try:
                        return await asyncio.wait_for(handler(*args, **kwargs), timeout=request_timeout)
                    except asyncio.TimeoutError as exc:
                        raise timeout_error(f"tool {name}", request_timeout) from exc
            except LocalBridgeError as exc:
                raise ToolError(str(exc)) from exc
            finally:
                logger.info(
                    "Tool request finished",
                    extra={"duration.seconds": f"{time.time() - start_time:.6f}"},
                )
                clear_request_context()

        return tool

    async def serve(self) -> None:
        app = self.app or self.build_app()
        await serve_transports(app, self.settings)

    async def close(self) -> None:
        await close_repositories(self.repositories)
        await close_redis_clients(self.redis_clients)
        self.repositories = {}
        self.redis_clients = {}
        logger.info("Server resources released")

    async def run(self) -> None:
        """Initialize, serve until the transports stop, then release resources."""
        try:
            await self.initialize()
            self.build_app()
            logger.info(
                "mcp-localbridge started",
                extra={"server": self.settings.server.name, "server_version": self.settings.server.version},
            )
            await self.serve()
        finally:
            await self.close()
