"""
Shared result types for provider clients.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.token_counter import TokenUsage


@dataclass(frozen=True)
class Completion:
    """Text returned by a plain completion call."""
    content: str
    usage: TokenUsage


@dataclass(frozen=True)
class ToolCall:
    """A function invocation requested by the model."""
    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass(frozen=True)
class ChatTurn:
    """One model response in a tool-calling conversation.

    Either ``tool_calls`` is non-empty, or ``text`` holds the answer; models
    may return both.
    """
    text: Optional[str]
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
