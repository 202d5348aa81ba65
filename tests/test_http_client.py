"""Tests for the shared HTTP client lifecycle."""

import pytest

from mentionbot.app.core.config import Settings
from mentionbot.app.core.http_client import build_limits, build_timeout, init_http_client


def test_pool_settings_come_from_given_settings():
    cfg = Settings(
        _env_file=None,
        httpx_max_connections=7,
        httpx_max_keepalive_connections=3,
        httpx_connect_timeout=2.5,
    )

    limits = build_limits(cfg)
    timeout = build_timeout(cfg)

    assert limits.max_connections == 7
    assert limits.max_keepalive_connections == 3
    assert timeout.connect == 2.5


@pytest.mark.asyncio
async def test_client_is_closed_on_exit():
    async with init_http_client(Settings(_env_file=None, httpx_read_timeout=12.0)) as client:
        assert not client.is_closed
        assert client.timeout.read == 12.0

    assert client.is_closed
