"""API endpoints package for the bot."""

from mentionbot.app.api.mentions import router as mentions_router

__all__ = [
    "mentions_router",
]
