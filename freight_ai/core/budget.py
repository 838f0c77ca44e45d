"""
Monthly budget evaluation.

Recommendation ladder (first match wins):
1. More than 90% of the budget used - critical, switch to economy models
2. More than 75% used - warning, throttle premium models
3. Projected month-end spend above 1.2x the budget - caution
4. Otherwise on track
"""

import calendar
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .pricing import round_currency


CRITICAL_PERCENT = 90.0
WARNING_PERCENT = 75.0
PROJECTION_FACTOR = 1.2


class BudgetAdvice(Enum):
    """Advisory levels for the monthly AI budget."""
    ON_TRACK = "On track: within budget"
    CAUTION = "CAUTION: projected to exceed budget by month end"
    WARNING = "WARNING: approaching budget. Consider throttling premium models."
    CRITICAL = "CRITICAL: near budget limit. Switch to economy models."


@dataclass(frozen=True)
class BudgetStatus:
    """Month-to-date spend against the configured ceiling."""
    monthly_budget: float
    monthly_spend: float
    percent_used: float
    projected_monthly: float
    over_budget: bool
    recommendation: str

    def to_dict(self) -> dict:
        return {
            "monthly_budget": self.monthly_budget,
            "monthly_spend": self.monthly_spend,
            "percent_used": self.percent_used,
            "projected_monthly": self.projected_monthly,
            "over_budget": self.over_budget,
            "recommendation": self.recommendation,
        }


def recommend(percent_used: float, projected: float, monthly_budget: float) -> BudgetAdvice:
    """Pick the advisory level for a spend position."""
    if percent_used > CRITICAL_PERCENT:
        return BudgetAdvice.CRITICAL
    if percent_used > WARNING_PERCENT:
        return BudgetAdvice.WARNING
    if projected > monthly_budget * PROJECTION_FACTOR:
        return BudgetAdvice.CAUTION
    return BudgetAdvice.ON_TRACK


def evaluate_budget(spent: float, monthly_budget: float, now: datetime) -> BudgetStatus:
    """Evaluate month-to-date spend against the monthly ceiling.

    The projection is a linear run rate: spend per elapsed day of the month
    times the number of days in the month.

    Args:
        spent: Month-to-date spend in USD
        monthly_budget: Monthly ceiling in USD (must be > 0)
        now: Current UTC time

    Returns:
        BudgetStatus with rounded figures
    """
    if monthly_budget <= 0:
        raise ValueError("monthly_budget must be > 0")

    days_in_month = calendar.monthrange(now.year, now.month)[1]
    projected = (spent / now.day) * days_in_month
    percent_used = (spent / monthly_budget) * 100
    advice = recommend(percent_used, projected, monthly_budget)

    return BudgetStatus(
        monthly_budget=monthly_budget,
        monthly_spend=round_currency(spent),
        percent_used=round(percent_used, 1),
        projected_monthly=round_currency(projected),
        over_budget=spent > monthly_budget,
        recommendation=advice.value,
    )
