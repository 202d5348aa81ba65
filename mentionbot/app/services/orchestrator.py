"""Two-phase, tool-augmented completion.

Phase one sends the conversation with the tool descriptors. If the model asks
for the registered tool, the tool runs once and phase two sends the
conversation again, extended with the model's proposal and the tool's result,
without any tools so the model has to answer. There is never a third call.
"""

import asyncio
import json
import time
from typing import List, Optional, Sequence

from mentionbot.app.core.logging import get_logger
from mentionbot.app.exceptions import (
    ArgumentDecodeError,
    DeadlineExceededError,
    EmptyResponseError,
    MalformedResponseError,
    ToolExecutionError,
)
from mentionbot.app.providers.base import BaseTransport
from mentionbot.app.providers.models import (
    ChatMessage,
    CompletionResult,
    MessageRole,
    ToolDescriptor,
    ToolInvocation,
)
from mentionbot.app.services.tools import ToolExecutor, ToolOutcome

logger = get_logger(__name__)

# Sent in the tool slot when an executor fails without its own fallback text.
# The wire protocol requires a tool reply for every open call.
TOOL_FALLBACK_MESSAGE = (
    "TOOL_ERROR: The tool is unavailable. Tell the user briefly that fresh "
    "data could not be retrieved, then answer from your own knowledge."
)


def decode_query(call: ToolInvocation) -> str:
    """Extract the ``query`` argument of a tool call.

    Raises:
        ArgumentDecodeError: Arguments are not a JSON object with a string query.
    """
    try:
        arguments = json.loads(call.raw_arguments)
    except (TypeError, ValueError) as e:
        raise ArgumentDecodeError(call.tool_name, call.raw_arguments, str(e)) from e
    if not isinstance(arguments, dict):
        raise ArgumentDecodeError(
            call.tool_name, call.raw_arguments, "arguments are not a JSON object"
        )
    query = arguments.get("query")
    if not isinstance(query, str):
        raise ArgumentDecodeError(
            call.tool_name, call.raw_arguments, "'query' must be a string"
        )
    return query


class CompletionOrchestrator:
    """Drives the bounded ask → tool → ask protocol over a transport.

    The orchestrator is stateless between calls and never retries; every
    failure surfaces once to the caller.
    """

    def __init__(self, transport: BaseTransport, deadline: float = 90.0):
        """Initialize the orchestrator.

        Args:
            transport: Chat-completion transport
            deadline: Seconds allowed for both phases combined
        """
        if deadline <= 0:
            raise ValueError("deadline must be positive")
        self.transport = transport
        self.deadline = deadline

    async def complete(
        self,
        history: Sequence[ChatMessage],
        tools: Optional[List[ToolDescriptor]] = None,
        tool_executor: Optional[ToolExecutor] = None,
    ) -> CompletionResult:
        """Run the two-phase protocol under a single deadline.

        Args:
            history: Conversation to complete (system prompt included)
            tools: Descriptors offered on the first call only
            tool_executor: The registered tool; None disables tool execution

        Returns:
            The final reply with tool usage details

        Raises:
            DeadlineExceededError: The combined deadline elapsed; the in-flight
                call was cancelled
            CompletionError: Any transport or protocol failure
        """
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._run(list(history), tools, tool_executor),
                timeout=self.deadline,
            )
        except asyncio.TimeoutError:
            raise DeadlineExceededError(self.deadline) from None

        logger.debug(
            "Completion finished",
            extra={
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                "tool": tool_executor.name if result.tool_invoked else None,
            },
        )
        return result

    async def _run(
        self,
        messages: List[ChatMessage],
        tools: Optional[List[ToolDescriptor]],
        tool_executor: Optional[ToolExecutor],
    ) -> CompletionResult:
        first = await self.transport.chat_completion(messages, tools or None)

        if not first.tool_calls or tool_executor is None:
            return CompletionResult(reply_text=first.content or "")

        # Only the first proposal is honored
        call = first.tool_calls[0]
        if call.tool_name != tool_executor.name:
            logger.debug(f"Ignoring proposal for unregistered tool {call.tool_name!r}")
            return CompletionResult(reply_text=first.content or "")
        if not call.id:
            raise MalformedResponseError("Tool call proposed without an id")

        query = decode_query(call)
        outcome = await self._execute(tool_executor, query)

        followup = messages + [
            ChatMessage(
                role=MessageRole.ASSISTANT,
                content=first.content,
                tool_calls=[call],
            ),
            ChatMessage.tool_result(call.id, outcome.text or TOOL_FALLBACK_MESSAGE),
        ]

        try:
            second = await self.transport.chat_completion(followup, None)
        except EmptyResponseError:
            raise EmptyResponseError(phase="second") from None

        return CompletionResult(
            reply_text=second.content or "",
            tool_invoked=True,
            tool_query=query,
            tool_error=outcome.error,
        )

    async def _execute(self, tool_executor: ToolExecutor, query: str) -> ToolOutcome:
        try:
            return await tool_executor.execute(query)
        except Exception as e:
            # Executors should report failures on the outcome; degrade anyway
            return ToolOutcome(
                text=TOOL_FALLBACK_MESSAGE,
                error=ToolExecutionError(tool_executor.name, f"{type(e).__name__}: {e}"),
            )
