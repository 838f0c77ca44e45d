"""
Unit tests for the cost ledger.
"""

import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from freight_ai.core.ledger import CostLedger
from freight_ai.storage.models import UsageRecord
from freight_ai.storage.repository import UsageRepository

NOW = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


def _record(model="gpt-4o", cost=0.25, when=NOW, success=True, provider="openai",
            query_type="rate_prediction", source="ai_router", latency=1000):
    return UsageRecord(
        provider=provider,
        model=model,
        input_tokens=100,
        output_tokens=50,
        cost_usd=cost,
        latency_ms=latency,
        query_type=query_type,
        source=source,
        success=success,
        error_type=None if success else "boom",
        created_at=when,
    )


class TestCostLedger:
    """Recording and aggregation against a real SQLite file."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.repository = UsageRepository(os.path.join(self.temp_dir, "test.db"))
        self.repository.initialize_schema()
        self.ledger = CostLedger(self.repository, monthly_budget=100.0)

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_summary_totals(self):
        self.ledger.record(_record(cost=0.25, latency=1000))
        self.ledger.record(_record(cost=0.50, latency=2000, model="claude-3-5-sonnet-20241022",
                                   provider="anthropic"))
        self.ledger.record(_record(cost=0.00, latency=300, success=False))

        summary = self.ledger.summary(days=30, now=NOW)

        assert summary.total_cost == 0.75
        assert summary.total_calls == 3
        assert summary.success_rate == 0.667
        assert summary.avg_latency == 1100

    def test_summary_breakdowns(self):
        self.ledger.record(_record(cost=0.25, source="chat", query_type="general_chat"))
        self.ledger.record(_record(cost=0.50, source="ai_router"))

        summary = self.ledger.summary(now=NOW)

        assert summary.by_provider == [{"provider": "openai", "cost": 0.75, "calls": 2}]
        assert {r["source"] for r in summary.by_source} == {"chat", "ai_router"}
        assert summary.by_model[0]["avg_latency"] == 1000
        assert summary.daily_costs == [{"date": "2026-03-18", "cost": 0.75, "calls": 2}]

    def test_breakdowns_add_up_to_total_with_sub_cent_costs(self):
        self.ledger.record(_record(cost=0.005, provider="openai", model="gpt-4o-mini", when=NOW))
        self.ledger.record(_record(cost=0.005, provider="anthropic", model="claude-3-haiku-20240307",
                                   when=NOW - timedelta(days=1)))
        self.ledger.record(_record(cost=0.0034, provider="openai", model="gpt-4o",
                                   source="chat", when=NOW - timedelta(days=2)))
        self.ledger.record(_record(cost=0.0071, provider="anthropic", model="claude-3-haiku-20240307",
                                   query_type="general_chat", when=NOW - timedelta(hours=1)))

        summary = self.ledger.summary(now=NOW)

        def cents(rows):
            return sum(round(row["cost"] * 100) for row in rows)

        assert summary.total_cost == 0.02
        assert cents(summary.by_provider) == 2
        assert cents(summary.daily_costs) == 2
        assert cents(summary.by_model) == 2
        assert cents(summary.by_query_type) == 2
        assert cents(summary.by_source) == 2
        assert [row["date"] for row in summary.daily_costs] == ["2026-03-16", "2026-03-17", "2026-03-18"]

    def test_two_half_cent_calls_on_different_days(self):
        self.ledger.record(_record(cost=0.005, provider="openai", when=NOW))
        self.ledger.record(_record(cost=0.005, provider="anthropic", when=NOW - timedelta(days=1)))

        summary = self.ledger.summary(now=NOW)

        assert summary.total_cost == 0.01
        assert sorted(row["cost"] for row in summary.by_provider) == [0.0, 0.01]
        assert sorted(row["cost"] for row in summary.daily_costs) == [0.0, 0.01]

    def test_summary_window_excludes_old_records(self):
        self.ledger.record(_record(cost=1.00, when=NOW - timedelta(days=40)))
        self.ledger.record(_record(cost=0.10, when=NOW - timedelta(days=2)))

        summary = self.ledger.summary(days=30, now=NOW)

        assert summary.total_calls == 1
        assert summary.total_cost == 0.10

    def test_empty_summary(self):
        summary = self.ledger.summary(now=NOW)
        assert summary.total_calls == 0
        assert summary.total_cost == 0
        assert summary.success_rate == 1.0
        assert summary.daily_costs == []

    def test_today_spend(self):
        self.ledger.record(_record(cost=0.40, when=NOW - timedelta(days=1)))
        self.ledger.record(_record(cost=0.10, when=NOW - timedelta(hours=1), model="gpt-4o-mini"))
        self.ledger.record(_record(cost=0.30, when=NOW - timedelta(hours=2), model="gpt-4o"))

        spend = self.ledger.today_spend(now=NOW)

        assert spend.cost_usd == 0.40
        assert spend.calls == 2
        assert spend.top_model == "gpt-4o"

    def test_today_spend_empty(self):
        spend = self.ledger.today_spend(now=NOW)
        assert spend.calls == 0
        assert spend.top_model is None

    def test_budget_status_uses_calendar_month(self):
        self.ledger.record(_record(cost=5.00, when=datetime(2026, 2, 27, tzinfo=timezone.utc)))
        self.ledger.record(_record(cost=9.00, when=datetime(2026, 3, 2, tzinfo=timezone.utc)))

        status = self.ledger.budget_status(now=NOW)

        assert status.monthly_spend == 9.00
        assert status.percent_used == 9.0
        assert status.monthly_budget == 100.0

    def test_record_never_raises(self):
        repository = Mock()
        repository.create.side_effect = RuntimeError("disk full")
        ledger = CostLedger(repository, monthly_budget=100.0)

        ledger.record(_record())

        repository.create.assert_called_once()
