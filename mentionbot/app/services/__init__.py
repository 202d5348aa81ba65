"""Services package: rate limiting, tool execution, orchestration and mention handling."""

from mentionbot.app.services.mention_handler import (
    ChannelMessage,
    MentionEvent,
    MentionHandler,
    MentionReply,
    MessageDeletion,
)
from mentionbot.app.services.orchestrator import CompletionOrchestrator
from mentionbot.app.services.rate_limit import RateLimitResult, SlidingWindowLimiter
from mentionbot.app.services.tools import ToolExecutor, ToolOutcome
from mentionbot.app.services.web_search import WebSearchTool

__all__ = [
    "ChannelMessage",
    "MentionEvent",
    "MentionHandler",
    "MentionReply",
    "MessageDeletion",
    "CompletionOrchestrator",
    "RateLimitResult",
    "SlidingWindowLimiter",
    "ToolExecutor",
    "ToolOutcome",
    "WebSearchTool",
]
