"""Chat-completion transports for the bot.

This package provides:
- Base transport interface (BaseTransport)
- The OpenAI-compatible DeepSeek implementation (DeepSeekTransport)
- Wire data models (ChatMessage, ToolInvocation, ToolDescriptor, CompletionResult)
"""

from mentionbot.app.providers.base import BaseTransport
from mentionbot.app.providers.deepseek import DeepSeekTransport
from mentionbot.app.providers.models import (
    ChatMessage,
    CompletionResult,
    MessageRole,
    ToolDescriptor,
    ToolInvocation,
)

__all__ = [
    "BaseTransport",
    "DeepSeekTransport",
    "ChatMessage",
    "CompletionResult",
    "MessageRole",
    "ToolDescriptor",
    "ToolInvocation",
]
