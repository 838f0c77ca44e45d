"""
Data models for storage layer.

Defines the usage ledger record and conversation entities.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..tools.actions import ActionButton


@dataclass(frozen=True)
class UsageRecord:
    """Immutable record of one provider attempt.

    Written once per attempt, successful or not. Once written, these records
    must never be modified.
    """
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    latency_ms: int
    query_type: str
    source: str
    success: bool
    created_at: datetime
    error_type: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class ConversationMessage:
    """A single chat message as persisted in a conversation."""
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime
    actions: List[ActionButton] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "actions": [action.to_dict() for action in self.actions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationMessage":
        return cls(
            role=data["role"],
            content=data["content"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            actions=[ActionButton.from_dict(a) for a in data.get("actions") or []],
        )


@dataclass(frozen=True)
class Conversation:
    """Ordered chat history for a (user, console context) pair."""
    id: int
    user_id: str
    console_context: str
    messages: List[ConversationMessage]
    created_at: datetime
    updated_at: datetime
