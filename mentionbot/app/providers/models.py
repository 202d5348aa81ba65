"""Chat completion data models (OpenAI chat format)."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolInvocation:
    """A tool call proposed by the model.

    ``raw_arguments`` is the serialized JSON object exactly as the model
    produced it; it is only parsed by the orchestrator.
    """
    id: str
    tool_name: str
    raw_arguments: str = "{}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.tool_name,
                "arguments": self.raw_arguments,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolInvocation":
        function = data.get("function") or {}
        arguments = function.get("arguments")
        if arguments is None:
            arguments = "{}"
        elif not isinstance(arguments, str):
            raise ValueError("tool call arguments must be a string")
        return cls(
            id=str(data.get("id", "")),
            tool_name=str(function.get("name", "")),
            raw_arguments=arguments,
        )


@dataclass
class ChatMessage:
    """One turn of the conversation sent to or received from the model."""
    role: MessageRole
    content: Optional[str] = None
    tool_calls: List[ToolInvocation] = field(default_factory=list)
    tool_call_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.role = MessageRole(self.role)
        if self.role == MessageRole.TOOL and not self.tool_call_id:
            raise ValueError("tool messages require a tool_call_id")
        if self.role in (MessageRole.USER, MessageRole.SYSTEM) and self.tool_calls:
            raise ValueError(f"{self.role.value} messages cannot carry tool_calls")

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.ASSISTANT, content=content)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> "ChatMessage":
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"role": self.role.value}
        if self.content is not None:
            data["content"] = self.content
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        """Build a message from a wire ``message`` object.

        Raises:
            ValueError: If the role is unknown or a field has the wrong type.
        """
        content = data.get("content")
        if content is not None and not isinstance(content, str):
            raise ValueError("message content must be a string")
        raw_calls = data.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raise ValueError("tool_calls must be a list")
        return cls(
            role=MessageRole(data.get("role", "assistant")),
            content=content,
            tool_calls=[ToolInvocation.from_dict(call) for call in raw_calls],
            tool_call_id=data.get("tool_call_id"),
        )


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of a tool offered to the model."""
    name: str
    description: str
    parameter_schema: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameter_schema,
            },
        }


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a completed two-phase exchange."""
    reply_text: str
    tool_invoked: bool = False
    tool_query: Optional[str] = None
    tool_error: Optional[Exception] = None
