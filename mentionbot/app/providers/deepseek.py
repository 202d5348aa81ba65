"""DeepSeek chat-completion transport.

Compatible with any OpenAI-style ``/chat/completions`` endpoint that supports
function calling.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

import httpx

from mentionbot.app.core.logging import get_logger
from mentionbot.app.exceptions import (
    ClassifiedError,
    DeadlineExceededError,
    EmptyResponseError,
    MalformedResponseError,
    TransportError,
)
from mentionbot.app.providers.base import BaseTransport
from mentionbot.app.providers.models import ChatMessage, ToolDescriptor

logger = get_logger(__name__)


class DeepSeekTransport(BaseTransport):
    """DeepSeek API transport with support for shared HTTP client connection pooling."""

    def build_payload(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[List[ToolDescriptor]] = None,
    ) -> Dict[str, Any]:
        """Build the request body; ``tools`` is only present when non-empty."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in messages],
            "temperature": self.temperature,
        }
        if tools:
            payload["tools"] = [tool.to_dict() for tool in tools]
        return payload

    async def chat_completion(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[List[ToolDescriptor]] = None,
    ) -> ChatMessage:
        """Send a non-streaming chat completion request.

        Args:
            messages: Conversation so far
            tools: Tool descriptors to offer to the model

        Returns:
            The first choice's message

        Raises:
            ClassifiedError: Non-200 response
            DeadlineExceededError: The attempt timed out
            TransportError: Network-level failure
            EmptyResponseError: Zero choices returned
            MalformedResponseError: Body could not be decoded
        """
        try:
            body = json.dumps(self.build_payload(messages, tools))
        except (TypeError, ValueError) as e:
            raise TransportError(f"Failed to serialize completion request: {e}") from e

        try:
            # httpx timeouts are per phase; the attempt as a whole is bounded here
            resp = await asyncio.wait_for(self._post(body), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise DeadlineExceededError(
                self.timeout, f"Completion attempt exceeded {self.timeout:g}s"
            ) from None
        except httpx.TimeoutException as e:
            raise DeadlineExceededError(
                self.timeout, f"Completion attempt timed out after {self.timeout:g}s"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Network error calling completion API: {e}") from e

        if resp.status_code != 200:
            logger.debug(
                f"Completion API returned HTTP {resp.status_code}",
                extra={"status_code": resp.status_code},
            )
            raise ClassifiedError(resp.status_code, resp.text)

        return self._parse_response(resp)

    async def _post(self, body: str) -> httpx.Response:
        async with self._client_context() as client:
            return await client.post(
                self.url,
                headers=self.headers,
                content=body,
                timeout=self.timeout,
            )

    def _parse_response(self, resp: httpx.Response) -> ChatMessage:
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON in completion response: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError("Completion response is not a JSON object")

        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise MalformedResponseError("Completion response 'choices' is not a list")
        if not choices:
            raise EmptyResponseError()

        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise MalformedResponseError("Completion choice has no message object")

        try:
            return ChatMessage.from_dict(message)
        except (ValueError, TypeError, AttributeError) as e:
            raise MalformedResponseError(f"Invalid message in completion response: {e}") from e
