"""Core utilities for the bot application."""

from mentionbot.app.core.config import Settings, settings
from mentionbot.app.core.http_client import init_http_client
from mentionbot.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "init_http_client",
    "get_log_context",
    "get_logger",
    "setup_logging",
]
