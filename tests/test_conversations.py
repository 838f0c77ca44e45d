"""
Unit tests for conversation persistence.
"""

import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone

from freight_ai.storage.conversations import MAX_MESSAGES, ConversationRepository
from freight_ai.storage.models import ConversationMessage
from freight_ai.tools.actions import ActionButton, ActionType

NOW = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


def _message(role, content, when=NOW, actions=None):
    return ConversationMessage(role=role, content=content, timestamp=when, actions=actions or [])


class TestConversationRepository:
    """Create, find and append."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.repository = ConversationRepository(os.path.join(self.temp_dir, "test.db"))
        self.repository.initialize_schema()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_create_and_get(self):
        created = self.repository.create("u-1", "internal", NOW)

        fetched = self.repository.get(created.id)

        assert fetched == created
        assert fetched.messages == []

    def test_get_unknown(self):
        assert self.repository.get(999) is None

    def test_append_persists_actions(self):
        conversation = self.repository.create("u-1", "internal", NOW)
        action = ActionButton("View load", ActionType.NAVIGATE, "/loads/l-1")

        updated = self.repository.append_messages(
            conversation,
            [_message("user", "where is L-1?"), _message("assistant", "In transit.", actions=[action])],
            NOW + timedelta(minutes=1),
        )

        fetched = self.repository.get(conversation.id)
        assert fetched == updated
        assert fetched.messages[1].actions == [action]
        assert fetched.updated_at == NOW + timedelta(minutes=1)

    def test_append_keeps_newest_messages(self):
        conversation = self.repository.create("u-1", "internal", NOW)
        messages = [_message("user", f"m{i}") for i in range(MAX_MESSAGES + 5)]

        updated = self.repository.append_messages(conversation, messages, NOW)

        assert len(updated.messages) == MAX_MESSAGES
        assert updated.messages[0].content == "m5"
        assert self.repository.get(conversation.id).messages[-1].content == f"m{MAX_MESSAGES + 4}"

    def test_find_recent_respects_cutoff(self):
        old = self.repository.create("u-1", "internal", NOW - timedelta(hours=30))

        assert self.repository.find_recent("u-1", "internal", NOW - timedelta(hours=24)) is None
        assert self.repository.find_recent("u-1", "internal", NOW - timedelta(hours=48)) == old

    def test_find_recent_is_per_console(self):
        self.repository.create("u-1", "carrier", NOW)

        assert self.repository.find_recent("u-1", "internal", NOW - timedelta(hours=1)) is None
        assert self.repository.find_recent("u-2", "carrier", NOW - timedelta(hours=1)) is None

    def test_find_recent_picks_latest(self):
        self.repository.create("u-1", "internal", NOW - timedelta(hours=2))
        newest = self.repository.create("u-1", "internal", NOW - timedelta(hours=1))

        assert self.repository.find_recent("u-1", "internal", NOW - timedelta(hours=24)).id == newest.id
