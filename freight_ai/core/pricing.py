"""
Pricing calculations.

Cost of a model call from the catalog's per-1K token prices.
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import List, Sequence, Union

from .providers import Model
from .token_counter import TokenUsage


_THOUSAND = Decimal("1000")
_CENT = Decimal("0.01")


def calculate_cost(model: Model, usage: TokenUsage) -> float:
    """Calculate the cost of a model call.

    cost = (input_tokens * cost_in + output_tokens * cost_out) / 1000

    The result is not rounded: single calls routinely cost fractions of a
    cent and the ledger rounds only when aggregating.

    Args:
        model: Catalog model that served the call
        usage: Token usage reported by the provider

    Returns:
        Cost in USD
    """
    if usage.input_tokens < 0 or usage.output_tokens < 0:
        raise ValueError("token counts cannot be negative")

    total = (
        Decimal(usage.input_tokens) * model.cost_per_1k_input
        + Decimal(usage.output_tokens) * model.cost_per_1k_output
    ) / _THOUSAND
    return float(total)


def round_currency(amount: Union[Decimal, float]) -> float:
    """Round a USD amount to cents, half up."""
    return float(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


def allocate_currency(parts: Sequence[Union[Decimal, float]]) -> List[float]:
    """Round parts to cents so they add up to their rounded total.

    Each part is floored to the cent and the cents still owed to the
    rounded total go to the parts with the largest remainders (earliest
    part first on ties).
    """
    amounts = [Decimal(str(p)) for p in parts]
    target = sum(amounts, Decimal("0")).quantize(_CENT, rounding=ROUND_HALF_UP)
    floors = [a.quantize(_CENT, rounding=ROUND_FLOOR) for a in amounts]
    leftover = int((target - sum(floors, Decimal("0"))) / _CENT)

    by_remainder = sorted(range(len(amounts)), key=lambda i: amounts[i] - floors[i], reverse=True)
    for i in by_remainder[:leftover]:
        floors[i] += _CENT
    return [float(f) for f in floors]
