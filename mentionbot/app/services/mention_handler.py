"""Turns an inbound mention into the bot's reply.

This is the only layer that consults the rate limiter, decides what to log,
and converts completion failures into user-facing messages.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from mentionbot.app.core.logging import get_log_context, get_logger
from mentionbot.app.exceptions import (
    DEADLINE_MESSAGE,
    GENERIC_FAILURE_MESSAGE,
    ClassifiedError,
    CompletionError,
    DeadlineExceededError,
    ProtocolError,
)
from mentionbot.app.providers.models import ChatMessage
from mentionbot.app.services.orchestrator import CompletionOrchestrator
from mentionbot.app.services.rate_limit import SlidingWindowLimiter
from mentionbot.app.services.tools import ToolExecutor

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = (
    "Whoa, slow down speedster! Wait another {seconds:.1f} seconds and I'll listen to you again."
)


@dataclass
class ChannelMessage:
    """A prior message from the channel, used as context."""
    author_id: str
    author_name: str
    content: str


@dataclass
class MentionEvent:
    """An inbound channel message as delivered by the platform gateway."""
    message_id: str
    channel_id: str
    author_id: str
    author_name: str
    content: str
    author_is_bot: bool = False
    mentions: List[str] = field(default_factory=list)
    # Most recent first, as platforms return channel history
    history: List[ChannelMessage] = field(default_factory=list)


@dataclass
class MessageDeletion:
    """A deleted channel message; author fields are empty when the platform had it uncached."""
    message_id: str
    channel_id: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_is_bot: bool = False
    content: str = ""


@dataclass
class MentionReply:
    """What to send back; ``text`` is None when the bot stays silent."""
    text: Optional[str] = None
    rate_limited: bool = False
    retry_after: float = 0.0
    error_category: Optional[str] = None
    tool_invoked: bool = False


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def truncate_words(text: str, n: int) -> str:
    words = text.split()
    if len(words) <= n:
        return text
    return " ".join(words[:n]) + "..."


def strip_bot_mention(content: str, bot_user_id: str) -> str:
    """Remove ``<@id>`` and ``<@!id>`` mention tokens of the bot."""
    content = content.replace(f"<@{bot_user_id}>", "")
    content = content.replace(f"<@!{bot_user_id}>", "")
    return content.strip()


class MentionHandler:
    """Admits, completes and renders replies to mentions of the bot."""

    def __init__(
        self,
        limiter: SlidingWindowLimiter,
        orchestrator: CompletionOrchestrator,
        bot_user_id: str,
        system_prompt: str,
        tool_executor: Optional[ToolExecutor] = None,
        history_limit: int = 20,
        reply_max_length: int = 2000,
    ):
        self.limiter = limiter
        self.orchestrator = orchestrator
        self.bot_user_id = bot_user_id
        self.system_prompt = system_prompt
        self.tool_executor = tool_executor
        self.history_limit = history_limit
        self.reply_max_length = reply_max_length

    def is_mentioned(self, event: MentionEvent) -> bool:
        return self.bot_user_id in event.mentions

    def build_history(self, event: MentionEvent) -> List[ChatMessage]:
        """Convert channel history to chat turns, oldest first.

        The bot's own messages become assistant turns; everyone else's become
        user turns prefixed with the author's name. Empty messages are skipped.
        """
        recent = event.history[: self.history_limit]
        history: List[ChatMessage] = []
        for message in reversed(recent):
            if not message.content:
                continue
            if message.author_id == self.bot_user_id:
                history.append(ChatMessage.assistant(message.content))
                continue
            cleaned = strip_bot_mention(message.content, self.bot_user_id)
            if not cleaned:
                continue
            history.append(ChatMessage.user(f"[{message.author_name}] {cleaned}"))
        return history

    def build_messages(self, event: MentionEvent, clean_content: str) -> List[ChatMessage]:
        messages = [ChatMessage.system(self.system_prompt)]
        messages.extend(self.build_history(event))
        messages.append(ChatMessage.user(f"[{event.author_name}] {clean_content}"))
        return messages

    async def handle(self, event: MentionEvent, request_id: Optional[str] = None) -> MentionReply:
        """Produce the reply for one inbound message.

        Args:
            event: The inbound message
            request_id: Optional request ID for log correlation

        Returns:
            The reply to deliver; ``text`` is None for ignored messages
        """
        # Never answer ourselves
        if event.author_id == self.bot_user_id:
            return MentionReply()
        if not self.is_mentioned(event):
            return MentionReply()

        log_ctx = get_log_context(
            request_id=request_id,
            user_id=event.author_id,
            channel_id=event.channel_id,
        )

        decision = await self.limiter.admit(event.author_id)
        if not decision.allowed:
            logger.info(
                f"Rate limited {event.author_name}, retry in {decision.retry_after:.1f}s",
                extra=log_ctx,
            )
            return MentionReply(
                text=RATE_LIMIT_MESSAGE.format(seconds=decision.retry_after),
                rate_limited=True,
                retry_after=decision.retry_after,
            )

        clean_content = strip_bot_mention(event.content, self.bot_user_id)
        logger.info(
            f"Mention received from {event.author_name}: {truncate_words(clean_content, 10)}",
            extra=log_ctx,
        )

        messages = self.build_messages(event, clean_content)
        tools = [self.tool_executor.descriptor] if self.tool_executor else None

        try:
            result = await self.orchestrator.complete(messages, tools, self.tool_executor)
        except CompletionError as e:
            return self._error_reply(e, log_ctx)

        if result.tool_invoked:
            tool_ctx = {**log_ctx, "tool": self.tool_executor.name, "query": result.tool_query}
            if result.tool_error is not None:
                logger.error(f"Web search failed: {result.tool_error}", extra=tool_ctx)
            else:
                logger.info(f"Web search used: {result.tool_query}", extra=tool_ctx)

        return MentionReply(
            text=truncate(result.reply_text, self.reply_max_length),
            tool_invoked=result.tool_invoked,
        )

    def record_deletion(self, deletion: MessageDeletion, request_id: Optional[str] = None) -> bool:
        """Write an audit log entry for a deleted message.

        Returns:
            True if an entry was written; messages by bots and messages whose
            author is unknown are skipped
        """
        if not deletion.author_id or deletion.author_is_bot:
            return False
        logger.info(
            f"Message deleted: {deletion.content}",
            extra=get_log_context(
                request_id=request_id,
                user_id=deletion.author_id,
                channel_id=deletion.channel_id,
                author=deletion.author_name,
                message_id=deletion.message_id,
            ),
        )
        return True

    def _error_reply(self, error: CompletionError, log_ctx: dict) -> MentionReply:
        if isinstance(error, ClassifiedError):
            logger.error(
                f"Completion API error (HTTP {error.status_code}): {error.raw_body}",
                extra={**log_ctx, "status_code": error.status_code},
            )
            return MentionReply(
                text=error.user_message(),
                error_category=error.category.value,
            )

        if isinstance(error, DeadlineExceededError):
            logger.warning(f"Completion timed out: {error}", extra=log_ctx)
            return MentionReply(text=DEADLINE_MESSAGE, error_category="deadline")

        category = "protocol" if isinstance(error, ProtocolError) else "transport"
        logger.error(f"Completion failed: {error}", extra=log_ctx)
        return MentionReply(text=GENERIC_FAILURE_MESSAGE, error_category=category)
