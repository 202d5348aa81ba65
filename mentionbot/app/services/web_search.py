"""Web search tool backed by the Tavily search API.

The model calls this tool when it needs fresh information. Failures never
propagate: the model receives a fallback instruction telling it to say the
search was unavailable and answer from its own knowledge.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import httpx

from mentionbot.app.core.logging import get_logger
from mentionbot.app.exceptions import ToolExecutionError
from mentionbot.app.providers.models import ToolDescriptor
from mentionbot.app.services.tools import ToolExecutor, ToolOutcome

logger = get_logger(__name__)

SEARCH_TOOL_NAME = "search_internet"
MAX_SNIPPETS = 3

NO_RESULTS_MESSAGE = "No recent information found on the web."

FALLBACK_MESSAGE = (
    "TOOL_ERROR: The internet search failed and is unavailable. "
    "Start your answer with a short, factual and honest sentence such as: "
    "\"I can't fetch fresh, precise data from the web right now, but here is what I can tell you:\". "
    "Do not joke about the failure, stay factual about the problem. "
    "Then answer as well as you can from your own knowledge."
)

SEARCH_TOOL = ToolDescriptor(
    name=SEARCH_TOOL_NAME,
    description=(
        "Search the internet for recent information. Use this tool when you need "
        "up-to-date facts, news, or data you do not already have."
    ),
    parameter_schema={
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "The web search query used to find recent information on the topic.",
            }
        },
        "required": ["query"],
    },
)


def format_results(data: Dict[str, Any]) -> str:
    """Render the first results as ``- title: content`` lines."""
    results = data.get("results") or []
    if not isinstance(results, list):
        results = []
    snippets = [
        f"- {result.get('title', '')}: {result.get('content', '')}"
        for result in results[:MAX_SNIPPETS]
        if isinstance(result, dict)
    ]
    if not snippets:
        return NO_RESULTS_MESSAGE
    return "\n".join(snippets)


class WebSearchTool(ToolExecutor):
    """Tavily-backed ``search_internet`` tool."""

    def __init__(
        self,
        api_key: str,
        url: str = "https://api.tavily.com/search",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        """Initialize the search tool.

        Args:
            api_key: Tavily API key
            url: Search endpoint URL
            http_client: Optional shared HTTP client
            timeout: Hard bound on a single search, in seconds
        """
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self._http_client = http_client

    @property
    def descriptor(self) -> ToolDescriptor:
        return SEARCH_TOOL

    def _fail(self, reason: str) -> ToolOutcome:
        return ToolOutcome(
            text=FALLBACK_MESSAGE,
            error=ToolExecutionError(SEARCH_TOOL_NAME, reason),
        )

    async def _post(self, body: str) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._http_client is not None:
            return await self._http_client.post(
                self.url, headers=headers, content=body, timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, headers=headers, content=body)

    async def execute(self, query: str) -> ToolOutcome:
        payload = {
            "api_key": self.api_key,
            "query": query,
            "search_depth": "basic",
            "include_answer": False,
        }
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            return self._fail(f"Serializing Tavily request: {e}")

        try:
            resp = await asyncio.wait_for(self._post(body), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._fail(f"Tavily search timed out after {self.timeout:g}s")
        except httpx.HTTPError as e:
            return self._fail(f"Calling Tavily API: {e}")

        if resp.status_code != 200:
            return self._fail(f"Tavily API HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            return self._fail(f"Decoding Tavily response: {e}")
        if not isinstance(data, dict):
            return self._fail("Decoding Tavily response: not a JSON object")

        logger.debug(f"Web search for {query!r} succeeded")
        return ToolOutcome(text=format_results(data))
