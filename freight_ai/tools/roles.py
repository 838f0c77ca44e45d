"""
Caller identities for tool execution.

A caller is one of a closed set of role variants. Role-specific fields (the
carrier profile id) exist only on the variant that has them.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class CarrierCaller:
    """A carrier user; sees only loads assigned to them."""
    user_id: str
    carrier_id: Optional[str] = None  # carrier profile id, when known
    role: str = "CARRIER"


@dataclass(frozen=True)
class BrokerCaller:
    """A broker or account executive; sees loads they posted."""
    user_id: str
    role: str = "BROKER"


@dataclass(frozen=True)
class OperationsCaller:
    """Dispatch and operations staff; see all loads."""
    user_id: str
    role: str = "OPERATIONS"


@dataclass(frozen=True)
class AccountingCaller:
    """Accounting staff; see all loads and the full financial view."""
    user_id: str
    role: str = "ACCOUNTING"


@dataclass(frozen=True)
class AdminCaller:
    """Administrators and executives; see everything."""
    user_id: str
    role: str = "ADMIN"


@dataclass(frozen=True)
class PublicCaller:
    """A visitor or an unrecognised role; sees nothing shared."""
    user_id: str
    role: str = "PUBLIC"


ToolContext = Union[
    CarrierCaller, BrokerCaller, OperationsCaller, AccountingCaller, AdminCaller, PublicCaller
]

ALL_ROWS_CALLERS: Tuple[type, ...] = (OperationsCaller, AccountingCaller, AdminCaller)


def caller_from_role(user_id: str, role: str, carrier_id: Optional[str] = None) -> ToolContext:
    """Build the caller variant for a platform role string.

    Args:
        user_id: Authenticated user id
        role: Platform role (CARRIER, BROKER, AE, DISPATCH, OPERATIONS,
            ACCOUNTING, ADMIN, CEO); anything else is treated as public
        carrier_id: Carrier profile id, used only for carrier users

    Returns:
        The matching caller variant
    """
    role = (role or "").strip().upper()
    if role == "CARRIER":
        return CarrierCaller(user_id=user_id, carrier_id=carrier_id)
    if role in ("BROKER", "AE"):
        return BrokerCaller(user_id=user_id, role=role)
    if role in ("DISPATCH", "OPERATIONS"):
        return OperationsCaller(user_id=user_id, role=role)
    if role == "ACCOUNTING":
        return AccountingCaller(user_id=user_id)
    if role in ("ADMIN", "CEO"):
        return AdminCaller(user_id=user_id, role=role)
    return PublicCaller(user_id=user_id)


def sees_all_rows(ctx: ToolContext) -> bool:
    return isinstance(ctx, ALL_ROWS_CALLERS)
