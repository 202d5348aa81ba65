"""Tests for chat wire models."""

import pytest

from mentionbot.app.providers.models import (
    ChatMessage,
    MessageRole,
    ToolDescriptor,
    ToolInvocation,
)


class TestChatMessageInvariants:
    def test_tool_message_requires_call_id(self):
        with pytest.raises(ValueError):
            ChatMessage(role=MessageRole.TOOL, content="result")

    @pytest.mark.parametrize("role", [MessageRole.USER, MessageRole.SYSTEM])
    def test_user_and_system_cannot_carry_tool_calls(self, role):
        with pytest.raises(ValueError):
            ChatMessage(
                role=role,
                content="hi",
                tool_calls=[ToolInvocation(id="call_1", tool_name="search_internet")],
            )

    def test_role_accepts_plain_string(self):
        message = ChatMessage(role="assistant", content="hello")
        assert message.role is MessageRole.ASSISTANT

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            ChatMessage(role="narrator", content="once upon a time")


class TestWireFormat:
    def test_plain_message_omits_empty_fields(self):
        assert ChatMessage.user("[alice] hi").to_dict() == {
            "role": "user",
            "content": "[alice] hi",
        }

    def test_tool_result_message(self):
        assert ChatMessage.tool_result("call_1", "result").to_dict() == {
            "role": "tool",
            "content": "result",
            "tool_call_id": "call_1",
        }

    def test_assistant_tool_call_from_wire(self):
        message = ChatMessage.from_dict({
            "role": "assistant",
            "content": None,
            "tool_calls": [{
                "id": "call_1",
                "type": "function",
                "function": {"name": "search_internet", "arguments": '{"query": "x"}'},
            }],
        })

        assert message.content is None
        assert message.tool_calls == [
            ToolInvocation(id="call_1", tool_name="search_internet", raw_arguments='{"query": "x"}')
        ]
        assert message.to_dict()["tool_calls"][0]["function"]["arguments"] == '{"query": "x"}'

    def test_non_string_content_rejected(self):
        with pytest.raises(ValueError):
            ChatMessage.from_dict({"role": "assistant", "content": 42})

    def test_tool_descriptor_renders_function_schema(self):
        descriptor = ToolDescriptor(
            name="search_internet",
            description="Search",
            parameter_schema={"type": "object", "properties": {}},
        )
        assert descriptor.to_dict() == {
            "type": "function",
            "function": {
                "name": "search_internet",
                "description": "Search",
                "parameters": {"type": "object", "properties": {}},
            },
        }
