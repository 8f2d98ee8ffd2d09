"""Transports that expose the MCP application.

stdio is served by FastMCP itself; streamable HTTP and SSE are ASGI apps
served by uvicorn. Every enabled transport runs as its own task.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List

import uvicorn
from mcp.server.fastmcp import FastMCP

from localbridge.logging import get_logger
from localbridge.logging.logger import normalize_level
from localbridge.settings import LocalBridgeSettings

logger = get_logger(__name__)


def uvicorn_log_level(level: str) -> str:
    return normalize_level(level).lower()


async def run_stdio(app: FastMCP) -> None:
    await app.run_stdio_async()


async def _run_uvicorn(asgi_app, host: str, port: int, log_level: str) -> None:
    # log_config=None keeps the dictConfig logging set up at startup
    config = uvicorn.Config(asgi_app, host=host, port=port, log_level=log_level, log_config=None)
    await uvicorn.Server(config).serve()


async def run_http(app: FastMCP, settings: LocalBridgeSettings) -> None:
    http = settings.transports.http
    logger.info("Serving streamable HTTP", extra={"host": http.host, "port": http.port, "path": http.endpoint_path})
    await _run_uvicorn(app.streamable_http_app(), http.host, http.port, uvicorn_log_level(settings.logging.level))


async def run_sse(app: FastMCP, settings: LocalBridgeSettings) -> None:
    sse = settings.transports.sse
    logger.info("Serving SSE", extra={"host": sse.host, "port": sse.port, "path": sse.sse_endpoint})
    await _run_uvicorn(app.sse_app(), sse.host, sse.port, uvicorn_log_level(settings.logging.level))


def enabled_transports(
    app: FastMCP,
    settings: LocalBridgeSettings,
) -> Dict[str, Callable[[], Awaitable[None]]]:
    runners: Dict[str, Callable[[], Awaitable[None]]] = {}
    if settings.transports.stdio.enabled:
        runners["stdio"] = lambda: run_stdio(app)
    if settings.transports.http.enabled:
        runners["http"] = lambda: run_http(app, settings)
    if settings.transports.sse.enabled:
        runners["sse"] = lambda: run_sse(app, settings)
    return runners


async def serve_transports(app: FastMCP, settings: LocalBridgeSettings) -> None:
    """Run every enabled transport until all finish or one fails.

    A failing transport cancels the others and its exception propagates.
    """
    runners = enabled_transports(app, settings)
    logger.info("Starting transports", extra={"transports": list(runners)})

    tasks: List[asyncio.Task] = [
        asyncio.create_task(runner(), name=f"transport-{name}") for name, runner in runners.items()
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
