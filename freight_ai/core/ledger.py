"""
Cost ledger.

Records every provider attempt and answers the cost dashboard queries:
windowed summaries, today's spend and the monthly budget position.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from .budget import BudgetStatus, evaluate_budget
from .pricing import allocate_currency, round_currency
from ..storage.models import UsageRecord
from ..storage.repository import UsageRepository
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _Bucket:
    cost: Decimal = Decimal("0")
    calls: int = 0
    total_latency: int = 0

    def add(self, record: UsageRecord) -> None:
        self.cost += Decimal(str(record.cost_usd))
        self.calls += 1
        self.total_latency += record.latency_ms


@dataclass(frozen=True)
class CostSummary:
    """Aggregated AI spend over a trailing window."""
    total_cost: float
    total_calls: int
    success_rate: float
    avg_latency: int
    by_provider: List[Dict] = field(default_factory=list)
    by_model: List[Dict] = field(default_factory=list)
    by_query_type: List[Dict] = field(default_factory=list)
    by_source: List[Dict] = field(default_factory=list)
    daily_costs: List[Dict] = field(default_factory=list)


@dataclass(frozen=True)
class TodaySpend:
    """Spend since UTC midnight."""
    cost_usd: float
    calls: int
    top_model: Optional[str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _breakdown(buckets: Dict[str, _Bucket], key: str) -> List[Dict]:
    costs = allocate_currency([bucket.cost for bucket in buckets.values()])
    return [
        {key: name, "cost": cost, "calls": bucket.calls}
        for (name, bucket), cost in zip(buckets.items(), costs)
    ]


class CostLedger:
    """Append-only AI usage ledger with aggregation queries.

    Writes are best-effort: cost tracking is observability, so a failed
    write is logged and the caller's request carries on.
    """

    def __init__(self, repository: UsageRepository, monthly_budget: float):
        self.repository = repository
        self.monthly_budget = monthly_budget

    def record(self, record: UsageRecord) -> None:
        """Persist a usage record without ever raising."""
        try:
            self.repository.create(record)
        except Exception as e:
            logger.error(
                "ledger_write_failed",
                provider=record.provider,
                model=record.model,
                query_type=record.query_type,
                error=str(e),
            )

    def summary(self, days: int = 30, now: Optional[datetime] = None) -> CostSummary:
        """Aggregate usage over the trailing ``days`` days.

        Args:
            days: Window length in days
            now: Current UTC time (defaults to the wall clock)

        Returns:
            CostSummary with totals and per-dimension breakdowns
        """
        now = now or _utcnow()
        records = self.repository.fetch_since(now - timedelta(days=days))

        by_provider: Dict[str, _Bucket] = {}
        by_model: Dict[str, _Bucket] = {}
        by_query_type: Dict[str, _Bucket] = {}
        by_source: Dict[str, _Bucket] = {}
        by_day: Dict[str, _Bucket] = {}
        total = _Bucket()
        successes = 0

        for record in records:
            total.add(record)
            if record.success:
                successes += 1
            by_provider.setdefault(record.provider, _Bucket()).add(record)
            by_model.setdefault(record.model, _Bucket()).add(record)
            by_query_type.setdefault(record.query_type, _Bucket()).add(record)
            by_source.setdefault(record.source, _Bucket()).add(record)
            day = record.created_at.astimezone(timezone.utc).date().isoformat()
            by_day.setdefault(day, _Bucket()).add(record)

        return CostSummary(
            total_cost=round_currency(total.cost),
            total_calls=total.calls,
            success_rate=round(successes / total.calls, 3) if total.calls else 1.0,
            avg_latency=round(total.total_latency / total.calls) if total.calls else 0,
            by_provider=_breakdown(by_provider, "provider"),
            by_model=[
                dict(entry, avg_latency=round(by_model[entry["model"]].total_latency / entry["calls"]))
                for entry in _breakdown(by_model, "model")
            ],
            by_query_type=_breakdown(by_query_type, "query_type"),
            by_source=_breakdown(by_source, "source"),
            daily_costs=_breakdown(dict(sorted(by_day.items())), "date"),
        )

    def today_spend(self, now: Optional[datetime] = None) -> TodaySpend:
        """Spend and call count since UTC midnight, plus the costliest model."""
        now = now or _utcnow()
        midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        totals = self.repository.aggregate_since(midnight)
        return TodaySpend(
            cost_usd=round_currency(totals["cost"]),
            calls=totals["calls"],
            top_model=self.repository.top_model_since(midnight),
        )

    def budget_status(self, now: Optional[datetime] = None) -> BudgetStatus:
        """Month-to-date spend (UTC calendar month) against the budget."""
        now = (now or _utcnow()).astimezone(timezone.utc)
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        spent = self.repository.aggregate_since(start_of_month)["cost"]
        return evaluate_budget(spent, self.monthly_budget, now)
