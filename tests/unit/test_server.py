"""Unit tests for tool registration and the per-call wrapper."""

import asyncio
import inspect
from unittest.mock import AsyncMock, patch

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from localbridge.common.exceptions import LocalBridgeError, invalid_identifier_error
from localbridge.logging.filters import request_id_var, tool_name_var
from localbridge.server import LocalBridgeServer
from localbridge.settings import LocalBridgeSettings

EXPECTED_TOOLS = {
    "db_query",
    "db_count",
    "db_table_list",
    "db_table_preview",
    "db_table_schema",
    "db_list_databases",
    "redis_get",
    "redis_set",
    "redis_scan",
    "introspection",
    "semantic_summary",
    "relationship",
    "analytics",
    "metadata",
}


@pytest.fixture
def server(repositories):
    server = LocalBridgeServer(LocalBridgeSettings(server={"request_timeout": 1}))
    server.repositories = repositories
    return server


class TestWrapTool:
    async def test_returns_handler_result(self, server):
        async def echo(database: str, table: str) -> str:
            return f"{database}.{table}"

        tool = server.wrap_tool("echo", echo)

        assert await tool(database="mysql_main", table="users") == "mysql_main.users"

    async def test_errors_become_tool_errors(self, server):
        async def reject(table: str) -> str:
            raise invalid_identifier_error(table, "table")

        tool = server.wrap_tool("reject", reject)

        with pytest.raises(ToolError) as exc_info:
            await tool(table="users;")
        assert str(exc_info.value).startswith("[VALIDATION_004] invalid table name")

    async def test_request_deadline(self, server):
        async def slow() -> str:
            await asyncio.sleep(5)
            return "late"

        tool = server.wrap_tool("slow", slow)

        with pytest.raises(ToolError) as exc_info:
            await tool()
        assert "tool slow exceeded the 1s deadline" in str(exc_info.value)

    async def test_request_context_is_set_and_cleared(self, server):
        seen = {}

        async def capture() -> str:
            seen["request_id"] = request_id_var.get()
            seen["tool_name"] = tool_name_var.get()
            return "ok"

        await server.wrap_tool("capture", capture)()

        assert seen["tool_name"] == "capture"
        assert len(seen["request_id"]) == 32
        assert request_id_var.get() is None
        assert tool_name_var.get() is None

    def test_signature_is_preserved(self, server):
        handler = dict(server.tool_handlers())["db_query"]
        tool = server.wrap_tool("db_query", handler)

        params = list(inspect.signature(tool).parameters)
        assert params == ["database", "table", "conditions", "limit", "offset", "order_by", "dry_run"]
        assert tool.__doc__ == handler.__doc__


class TestBuildApp:
    async def test_registers_every_tool(self, server):
        app = server.build_app()

        tools = {tool.name: tool for tool in await app.list_tools()}

        assert set(tools) == EXPECTED_TOOLS
        assert tools["db_query"].description.startswith("Execute a parameterized SELECT against a table.")
        assert set(tools["db_query"].inputSchema["required"]) == {"database", "table"}
        assert "required" not in tools["db_list_databases"].inputSchema or \
            not tools["db_list_databases"].inputSchema["required"]

    async def test_tool_call_reaches_handler(self, server, repositories):
        app = server.build_app()

        await app.call_tool("db_query", {"database": "mysql_main", "table": "users", "limit": 3})

        repositories["mysql_main"].execute.assert_awaited_once()
        assert repositories["mysql_main"].execute.await_args.args[0] == "SELECT * FROM `users` LIMIT 3"

    async def test_tool_call_failure_surfaces_message(self, server):
        app = server.build_app()

        with pytest.raises(ToolError) as exc_info:
            await app.call_tool("db_query", {"database": "nope", "table": "users"})
        assert "Available databases: mysql_main, pg_main" in str(exc_info.value)


class TestServerLifecycle:
    async def test_run_closes_resources_when_serving_fails(self):
        server = LocalBridgeServer(LocalBridgeSettings())

        with patch("localbridge.server.connect_repositories", new=AsyncMock(return_value={})), \
                patch("localbridge.server.connect_redis_clients", new=AsyncMock(return_value={})), \
                patch("localbridge.server.serve_transports", new=AsyncMock(side_effect=OSError("port in use"))), \
                patch("localbridge.server.close_repositories", new=AsyncMock()) as close_repos, \
                patch("localbridge.server.close_redis_clients", new=AsyncMock()) as close_redis:
            with pytest.raises(OSError):
                await server.run()

        close_repos.assert_awaited_once()
        close_redis.assert_awaited_once()
        assert server.app is not None

    async def test_initialize_uses_query_timeout(self):
        settings = LocalBridgeSettings(tools={"db": {"query_timeout": 12}})
        server = LocalBridgeServer(settings)

        with patch("localbridge.server.connect_repositories", new=AsyncMock(return_value={})) as connect, \
                patch("localbridge.server.connect_redis_clients", new=AsyncMock(return_value={})):
            await server.initialize()

        assert connect.await_args.kwargs["default_timeout"] == 12

    async def test_startup_failure_propagates(self):
        server = LocalBridgeServer(LocalBridgeSettings())
        failure = LocalBridgeError("no databases configured or enabled")

        with patch("localbridge.server.connect_repositories", new=AsyncMock(side_effect=failure)), \
                patch("localbridge.server.serve_transports", new=AsyncMock()) as serve:
            with pytest.raises(LocalBridgeError):
                await server.run()

        serve.assert_not_awaited()
