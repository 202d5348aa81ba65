from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence

import httpx

from mentionbot.app.providers.models import ChatMessage, ToolDescriptor


class BaseTransport(ABC):
    """Base class for chat-completion transports.

    A transport is a pure protocol adapter: it marshals one request, performs
    a single attempt and unmarshals the first choice. It never retries and
    holds no mutable state after construction.

    Subclasses can accept an external httpx.AsyncClient for connection pooling,
    or create their own if not provided.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        temperature: float,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        """Initialize the transport.

        Args:
            url: Full chat-completion endpoint URL
            api_key: The API key for authentication
            model: Model identifier sent with every request
            temperature: Sampling temperature sent with every request
            http_client: Optional shared HTTP client for connection pooling
            timeout: Per-attempt timeout in seconds
        """
        self._http_client = http_client
        self.url = url
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.headers = self._build_headers()

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    @asynccontextmanager
    async def _client_context(self):
        """Yield the shared client, or a per-request client that is closed after use."""
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.AsyncClient(timeout=self.timeout)
        try:
            yield client
        finally:
            await client.aclose()

    @abstractmethod
    async def chat_completion(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[List[ToolDescriptor]] = None,
    ) -> ChatMessage:
        """Send one chat completion request and return the first choice.

        Args:
            messages: Conversation so far
            tools: Tool descriptors to offer; omitted from the request when empty

        Returns:
            The assistant message of the first choice

        Raises:
            ClassifiedError: The service answered with a non-200 status
            TransportError: The request never completed
            ProtocolError: The response could not be used
        """
        pass
