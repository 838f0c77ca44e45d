"""
Unit tests for storage layer.

Tests schema creation, record insertion, and retrieval operations.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from freight_ai.storage.db import get_connection
from freight_ai.storage.domain import DomainRepository
from freight_ai.storage.models import UsageRecord
from freight_ai.storage.repository import UsageRepository

NOW = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


def _record(cost=0.01, when=NOW, model="gpt-4o-mini", success=True):
    return UsageRecord(
        provider="openai",
        model=model,
        input_tokens=1200,
        output_tokens=300,
        cost_usd=cost,
        latency_ms=640,
        query_type="carrier_match",
        source="ai_router",
        success=success,
        error_type=None if success else "openai API error 500: upstream",
        user_id="u-1",
        created_at=when,
    )


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self):
        """Verify the ledger table is created correctly."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            UsageRepository(db_path).initialize_schema()

            conn = get_connection(db_path)
            try:
                columns = [col[1] for col in conn.execute("PRAGMA table_info(ai_api_usage)").fetchall()]
                assert columns == [
                    "id", "provider", "model", "input_tokens", "output_tokens", "cost_usd",
                    "latency_ms", "query_type", "source", "success", "error_type", "user_id",
                    "created_at",
                ]
            finally:
                conn.close()

    def test_schema_is_idempotent(self):
        """Initializing twice is harmless."""
        with tempfile.TemporaryDirectory() as temp_dir:
            repository = UsageRepository(os.path.join(temp_dir, "test.db"))
            repository.initialize_schema()
            repository.initialize_schema()
            assert repository.fetch_since(NOW - timedelta(days=1)) == []

    def test_domain_schema_enforces_foreign_keys(self):
        """A load cannot point at an unknown user."""
        import sqlite3

        with tempfile.TemporaryDirectory() as temp_dir:
            domain = DomainRepository(os.path.join(temp_dir, "test.db"))
            domain.initialize_schema()
            with pytest.raises(sqlite3.IntegrityError):
                domain.insert("loads", {"id": "l-1", "status": "POSTED", "carrier_id": "ghost"})

    def test_domain_insert_rejects_unknown_table(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            domain = DomainRepository(os.path.join(temp_dir, "test.db"))
            with pytest.raises(ValueError, match="Unknown table"):
                domain.insert("ai_api_usage", {"id": 1})


class TestUsageRecords:
    """Test usage record insertion and queries."""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.repository = UsageRepository(os.path.join(self.temp_dir.name, "test.db"))
        self.repository.initialize_schema()

    def teardown_method(self):
        self.temp_dir.cleanup()

    def test_round_trip_preserves_fields(self):
        """Records read back equal the records written."""
        record = _record(success=False, cost=0.0)
        self.repository.create(record)

        fetched = self.repository.fetch_since(NOW - timedelta(hours=1))

        assert fetched == [record]

    def test_fetch_since_is_inclusive_and_ordered(self):
        self.repository.create(_record(when=NOW))
        self.repository.create(_record(when=NOW - timedelta(hours=2)))
        self.repository.create(_record(when=NOW - timedelta(days=3)))

        fetched = self.repository.fetch_since(NOW - timedelta(hours=2))

        assert [r.created_at for r in fetched] == [NOW - timedelta(hours=2), NOW]

    def test_aggregate_since(self):
        self.repository.create(_record(cost=0.25))
        self.repository.create(_record(cost=0.50))
        self.repository.create(_record(cost=9.99, when=NOW - timedelta(days=2)))

        totals = self.repository.aggregate_since(NOW - timedelta(hours=1))

        assert totals == {"cost": 0.75, "calls": 2}

    def test_aggregate_empty(self):
        assert self.repository.aggregate_since(NOW) == {"cost": 0.0, "calls": 0}

    def test_top_model_since(self):
        self.repository.create(_record(cost=0.20, model="gpt-4o-mini"))
        self.repository.create(_record(cost=0.20, model="gpt-4o-mini"))
        self.repository.create(_record(cost=0.30, model="gpt-4o"))

        assert self.repository.top_model_since(NOW - timedelta(hours=1)) == "gpt-4o-mini"
        assert self.repository.top_model_since(NOW + timedelta(hours=1)) is None
