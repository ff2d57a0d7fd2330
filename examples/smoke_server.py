from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field

from server_kit import ConfigBuilder, Flatten, ServerConfig, provides
from server_kit.server import serve


@provides(ServerConfig)
class SmokeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    server: Annotated[ServerConfig, Flatten()] = Field(default_factory=ServerConfig)
    greeting: str = "hello"


async def main() -> None:
    config = (
        ConfigBuilder(SmokeConfig)
        .with_dotenv()
        .with_config_file("examples/config.yaml")
        .with_logging_from_env()
        .build()
    )

    logger = logging.getLogger("smoke")
    logger.info("Config loaded environment=%s addr=%s", config.server.environment.value, config.server.addr())

    async def greet(request: web.Request) -> web.Response:
        return web.Response(text=config.greeting)

    app = web.Application()
    app.router.add_get("/", greet)
    await serve(app, config)


if __name__ == "__main__":
    asyncio.run(main())
