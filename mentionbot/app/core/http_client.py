"""Shared HTTP client management for connection pooling.

The completion transport and the web-search tool share one
``httpx.AsyncClient`` opened during the application lifespan.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx

from mentionbot.app.core.config import Settings, settings as default_settings


def build_timeout(app_settings: Optional[Settings] = None) -> httpx.Timeout:
    """Granular timeouts from settings (connect/read/write/pool)."""
    cfg = app_settings or default_settings
    return httpx.Timeout(
        connect=cfg.httpx_connect_timeout,
        read=cfg.httpx_read_timeout,
        write=cfg.httpx_write_timeout,
        pool=cfg.httpx_pool_timeout,
    )


def build_limits(app_settings: Optional[Settings] = None) -> httpx.Limits:
    cfg = app_settings or default_settings
    return httpx.Limits(
        max_connections=cfg.httpx_max_connections,
        max_keepalive_connections=cfg.httpx_max_keepalive_connections,
        keepalive_expiry=cfg.httpx_keepalive_expiry,
    )


@asynccontextmanager
async def init_http_client(
    app_settings: Optional[Settings] = None,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Open the pooled HTTP client and close it on exit.

    Used in the FastAPI lifespan:

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client(cfg) as http_client:
                yield
    """
    async with httpx.AsyncClient(
        timeout=build_timeout(app_settings), limits=build_limits(app_settings)
    ) as client:
        yield client
