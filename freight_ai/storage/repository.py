"""
Repository for the AI usage ledger.

Append-only storage of provider attempts plus the read queries the cost
ledger aggregates from.
"""

import sqlite3
from datetime import datetime
from typing import Dict, List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import UsageRecord


_COLUMNS = (
    "provider, model, input_tokens, output_tokens, cost_usd, latency_ms, "
    "query_type, source, success, error_type, user_id, created_at"
)


def _row_to_record(row: sqlite3.Row) -> UsageRecord:
    return UsageRecord(
        provider=row["provider"],
        model=row["model"],
        input_tokens=row["input_tokens"],
        output_tokens=row["output_tokens"],
        cost_usd=row["cost_usd"],
        latency_ms=row["latency_ms"],
        query_type=row["query_type"],
        source=row["source"],
        success=bool(row["success"]),
        error_type=row["error_type"],
        user_id=row["user_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class UsageRepository:
    """Repository for reading and appending AI usage records.

    No UPDATE or DELETE is ever issued against the ledger table.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the ai_api_usage table if it doesn't exist."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ai_api_usage (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    provider TEXT NOT NULL,
                    model TEXT NOT NULL,
                    input_tokens INTEGER NOT NULL,
                    output_tokens INTEGER NOT NULL,
                    cost_usd REAL NOT NULL,
                    latency_ms INTEGER NOT NULL,
                    query_type TEXT NOT NULL,
                    source TEXT NOT NULL,
                    success INTEGER NOT NULL,
                    error_type TEXT,
                    user_id TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_ai_api_usage_created_at ON ai_api_usage (created_at)"
            )
            conn.commit()
        finally:
            conn.close()

    def create(self, record: UsageRecord) -> None:
        """Append a single usage record.

        Args:
            record: The usage record to store
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                f"INSERT INTO ai_api_usage ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.provider,
                    record.model,
                    record.input_tokens,
                    record.output_tokens,
                    record.cost_usd,
                    record.latency_ms,
                    record.query_type,
                    record.source,
                    1 if record.success else 0,
                    record.error_type,
                    record.user_id,
                    record.created_at.isoformat(),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def fetch_since(self, since: datetime) -> List[UsageRecord]:
        """Fetch every record created at or after ``since``, oldest first.

        Args:
            since: Inclusive lower bound (timezone-aware UTC)

        Returns:
            Usage records in chronological order
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM ai_api_usage WHERE created_at >= ? ORDER BY created_at ASC, id ASC",
                (since.isoformat(),),
            )
            return [_row_to_record(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def aggregate_since(self, since: datetime) -> Dict[str, float]:
        """Sum cost and count calls since a point in time.

        Returns:
            Dictionary with ``cost`` and ``calls``
        """
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT COALESCE(SUM(cost_usd), 0) AS cost, COUNT(*) AS calls "
                "FROM ai_api_usage WHERE created_at >= ?",
                (since.isoformat(),),
            ).fetchone()
            return {"cost": float(row["cost"]), "calls": int(row["calls"])}
        finally:
            conn.close()

    def top_model_since(self, since: datetime) -> Optional[str]:
        """Model with the highest summed cost since a point in time."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT model, SUM(cost_usd) AS cost FROM ai_api_usage "
                "WHERE created_at >= ? GROUP BY model ORDER BY cost DESC, model ASC LIMIT 1",
                (since.isoformat(),),
            ).fetchone()
            return row["model"] if row else None
        finally:
            conn.close()
