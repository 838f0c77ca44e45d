"""
Repository for assistant conversations.

One row per conversation; messages are stored as a JSON array.
"""

import json
import sqlite3
from datetime import datetime
from typing import List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import Conversation, ConversationMessage

MAX_MESSAGES = 100


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        user_id=row["user_id"],
        console_context=row["console_context"],
        messages=[ConversationMessage.from_dict(m) for m in json.loads(row["messages"])],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class ConversationRepository:
    """Stores chat history per (user, console context)."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the conversations table if it doesn't exist."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    console_context TEXT NOT NULL,
                    messages TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_conversations_user "
                "ON conversations (user_id, console_context, updated_at)"
            )
            conn.commit()
        finally:
            conn.close()

    def find_recent(self, user_id: str, console_context: str, updated_since: datetime) -> Optional[Conversation]:
        """Most recently updated conversation touched at or after ``updated_since``."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT * FROM conversations WHERE user_id = ? AND console_context = ? "
                "AND updated_at >= ? ORDER BY updated_at DESC, id DESC LIMIT 1",
                (user_id, console_context, updated_since.isoformat()),
            ).fetchone()
            return _row_to_conversation(row) if row else None
        finally:
            conn.close()

    def get(self, conversation_id: int) -> Optional[Conversation]:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,)).fetchone()
            return _row_to_conversation(row) if row else None
        finally:
            conn.close()

    def create(self, user_id: str, console_context: str, now: datetime) -> Conversation:
        """Start an empty conversation."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "INSERT INTO conversations (user_id, console_context, messages, created_at, updated_at) "
                "VALUES (?, ?, '[]', ?, ?)",
                (user_id, console_context, now.isoformat(), now.isoformat()),
            )
            conn.commit()
            return Conversation(
                id=cursor.lastrowid,
                user_id=user_id,
                console_context=console_context,
                messages=[],
                created_at=now,
                updated_at=now,
            )
        finally:
            conn.close()

    def append_messages(
        self, conversation: Conversation, messages: List[ConversationMessage], now: datetime
    ) -> Conversation:
        """Append messages, keeping only the newest ``MAX_MESSAGES``."""
        kept = (list(conversation.messages) + list(messages))[-MAX_MESSAGES:]
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                "UPDATE conversations SET messages = ?, updated_at = ? WHERE id = ?",
                (json.dumps([m.to_dict() for m in kept]), now.isoformat(), conversation.id),
            )
            conn.commit()
        finally:
            conn.close()
        return Conversation(
            id=conversation.id,
            user_id=conversation.user_id,
            console_context=conversation.console_context,
            messages=kept,
            created_at=conversation.created_at,
            updated_at=now,
        )
