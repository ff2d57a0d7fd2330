from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from aiohttp import web

from server_kit.config.capability import project
from server_kit.config.models import ServerConfig

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def request_timeout_middleware(timeout_seconds: float) -> Any:
    """Answer 504 when a handler runs longer than `timeout_seconds`; 0 disables the limit."""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if timeout_seconds <= 0:
            return await handler(request)
        try:
            return await asyncio.wait_for(handler(request), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "server.request_timeout method=%s path=%s timeout_seconds=%s",
                request.method,
                request.path,
                timeout_seconds,
            )
            raise web.HTTPGatewayTimeout(text="Request timed out")

    return middleware


async def start_server(app: web.Application, config: Any) -> web.AppRunner:
    """
    Bind `app` to the address of the ServerConfig carried by `config`.

    `config` is any bound configuration that provides ServerConfig. The caller
    owns the returned runner and must call `cleanup()` on it.
    """
    server = project(config, ServerConfig)
    app.middlewares.append(request_timeout_middleware(server.request_timeout_secs))

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, server.host, server.port)
    try:
        await site.start()
    except OSError:
        logger.exception("server.bind_failed addr=%s", server.addr())
        await runner.cleanup()
        raise

    logger.info(
        "server.listening addr=%s environment=%s request_timeout_secs=%s",
        server.addr(),
        server.environment.value,
        server.request_timeout_secs,
    )
    return runner


async def serve(app: web.Application, config: Any) -> None:
    """Serve until the surrounding task is cancelled."""
    runner = await start_server(app, config)
    try:
        await asyncio.Event().wait()
    finally:
        logger.info("server.stopping")
        await runner.cleanup()
