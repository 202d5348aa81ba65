"""Tool execution capability offered to the completion orchestrator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from mentionbot.app.providers.models import ToolDescriptor


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool execution.

    ``text`` is always usable: on failure it holds a fallback instruction for
    the model and ``error`` describes what went wrong.
    """
    text: str
    error: Optional[Exception] = None


class ToolExecutor(ABC):
    """A single tool the model may call once per completion."""

    @property
    @abstractmethod
    def descriptor(self) -> ToolDescriptor:
        """Descriptor sent to the model on the first call."""
        pass

    @property
    def name(self) -> str:
        """Registered tool name; proposals under any other name are ignored."""
        return self.descriptor.name

    @abstractmethod
    async def execute(self, query: str) -> ToolOutcome:
        """Run the tool. Must not raise; failures are reported on the outcome."""
        pass
