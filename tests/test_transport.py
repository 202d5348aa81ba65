"""Tests for the DeepSeek chat-completion transport."""

import asyncio
import json
import time

import httpx
import pytest
import respx
from httpx import Response

from mentionbot.app.exceptions import (
    ClassifiedError,
    DeadlineExceededError,
    EmptyResponseError,
    ErrorCategory,
    MalformedResponseError,
    TransportError,
)
from mentionbot.app.providers.deepseek import DeepSeekTransport
from mentionbot.app.providers.models import ChatMessage
from mentionbot.app.services.web_search import SEARCH_TOOL

URL = "https://api.deepseek.test/chat/completions"


def completion(message: dict) -> dict:
    return {"id": "cmpl-1", "choices": [{"index": 0, "message": message}]}


@pytest.fixture
def transport():
    return DeepSeekTransport(
        url=URL,
        api_key="sk-test",
        model="deepseek-chat",
        temperature=1.3,
        timeout=5.0,
    )


@pytest.fixture
def messages():
    return [ChatMessage.system("be nice"), ChatMessage.user("[alice] hi")]


@pytest.mark.asyncio
@respx.mock
async def test_sends_model_temperature_and_messages(transport, messages):
    route = respx.post(URL).mock(
        return_value=Response(200, json=completion({"role": "assistant", "content": "hey"}))
    )

    reply = await transport.chat_completion(messages)

    assert reply.content == "hey"
    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer sk-test"
    payload = json.loads(request.content)
    assert payload["model"] == "deepseek-chat"
    assert payload["temperature"] == 1.3
    assert payload["messages"] == [
        {"role": "system", "content": "be nice"},
        {"role": "user", "content": "[alice] hi"},
    ]
    assert "tools" not in payload


@pytest.mark.asyncio
@respx.mock
async def test_includes_tools_when_offered(transport, messages):
    route = respx.post(URL).mock(
        return_value=Response(200, json=completion({"role": "assistant", "content": "ok"}))
    )

    await transport.chat_completion(messages, [SEARCH_TOOL])

    payload = json.loads(route.calls.last.request.content)
    assert payload["tools"][0]["type"] == "function"
    assert payload["tools"][0]["function"]["name"] == "search_internet"


@pytest.mark.asyncio
@respx.mock
async def test_decodes_tool_calls(transport, messages):
    respx.post(URL).mock(return_value=Response(200, json=completion({
        "role": "assistant",
        "content": "",
        "tool_calls": [{
            "id": "call_1",
            "type": "function",
            "function": {"name": "search_internet", "arguments": '{"query":"x"}'},
        }],
    })))

    reply = await transport.chat_completion(messages, [SEARCH_TOOL])

    assert len(reply.tool_calls) == 1
    assert reply.tool_calls[0].id == "call_1"
    assert reply.tool_calls[0].tool_name == "search_internet"
    assert reply.tool_calls[0].raw_arguments == '{"query":"x"}'


@pytest.mark.asyncio
@respx.mock
async def test_zero_choices_is_empty_response(transport, messages):
    respx.post(URL).mock(return_value=Response(200, json={"id": "x", "choices": []}))

    with pytest.raises(EmptyResponseError):
        await transport.chat_completion(messages)


@pytest.mark.asyncio
@respx.mock
async def test_undecodable_body_is_malformed(transport, messages):
    respx.post(URL).mock(return_value=Response(200, text="<html>not json</html>"))

    with pytest.raises(MalformedResponseError):
        await transport.chat_completion(messages)


@pytest.mark.asyncio
@respx.mock
async def test_choice_without_message_is_malformed(transport, messages):
    respx.post(URL).mock(return_value=Response(200, json={"choices": [{"index": 0}]}))

    with pytest.raises(MalformedResponseError):
        await transport.chat_completion(messages)


@pytest.mark.parametrize(
    ("status_code", "category"),
    [
        (429, ErrorCategory.RATE_LIMITED),
        (500, ErrorCategory.SERVER_FAULT),
        (402, ErrorCategory.QUOTA_EXHAUSTED),
    ],
)
@pytest.mark.asyncio
@respx.mock
async def test_non_200_is_classified(transport, messages, status_code, category):
    route = respx.post(URL).mock(
        return_value=Response(status_code, text='{"error": {"message": "nope"}}')
    )

    with pytest.raises(ClassifiedError) as exc_info:
        await transport.chat_completion(messages)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.raw_body == '{"error": {"message": "nope"}}'
    assert exc_info.value.category is category
    # Single attempt, no retry
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_connection_failure_is_transport_error(transport, messages):
    respx.post(URL).mock(side_effect=httpx.ConnectError("connection refused"))

    with pytest.raises(TransportError) as exc_info:
        await transport.chat_completion(messages)

    assert not isinstance(exc_info.value, ClassifiedError)
    assert not isinstance(exc_info.value, DeadlineExceededError)


@pytest.mark.asyncio
@respx.mock
async def test_timeout_is_deadline_error(transport, messages):
    respx.post(URL).mock(side_effect=httpx.ReadTimeout("too slow"))

    with pytest.raises(DeadlineExceededError):
        await transport.chat_completion(messages)


def trickling_transport(payload: dict, chunk_size: int = 8, delay: float = 0.1):
    """Mock transport whose 200 body arrives in small chunks with a pause between them."""
    raw = json.dumps(payload).encode()

    async def body():
        for i in range(0, len(raw), chunk_size):
            await asyncio.sleep(delay)
            yield raw[i:i + chunk_size]

    async def handler(request):
        return Response(200, headers={"Content-Type": "application/json"}, content=body())

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_attempt_timeout_is_absolute(messages):
    payload = completion({"role": "assistant", "content": "hi"})

    async with httpx.AsyncClient(transport=trickling_transport(payload)) as client:
        transport = DeepSeekTransport(
            url=URL,
            api_key="sk-test",
            model="deepseek-chat",
            temperature=1.3,
            http_client=client,
            timeout=0.3,
        )
        started = time.perf_counter()
        with pytest.raises(DeadlineExceededError):
            await transport.chat_completion(messages)
        elapsed = time.perf_counter() - started

    assert elapsed < 1.0


@pytest.mark.asyncio
@respx.mock
async def test_uses_shared_client(messages):
    respx.post(URL).mock(
        return_value=Response(200, json=completion({"role": "assistant", "content": "pooled"}))
    )

    async with httpx.AsyncClient() as client:
        transport = DeepSeekTransport(
            url=URL,
            api_key="sk-test",
            model="deepseek-chat",
            temperature=1.3,
            http_client=client,
        )
        reply = await transport.chat_completion(messages)
        assert not client.is_closed

    assert reply.content == "pooled"
