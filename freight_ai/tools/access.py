"""
Role-scoped data access for assistant tools.

One method per tool. Each method derives the caller's row scope once,
pushes it into the repository query, redacts shipper-side pricing for
carriers and answers forbidden requests with an in-band error dict.
Analytics are computed at request time from the rows the caller may see.
"""

import functools
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .roles import (
    AccountingCaller,
    AdminCaller,
    BrokerCaller,
    CarrierCaller,
    OperationsCaller,
    PublicCaller,
    ToolContext,
    sees_all_rows,
)
from ..storage.domain import ALL_LOADS, DomainRepository, LoadScope
from ..utils.logging import get_logger

logger = get_logger(__name__)

ACTIVE_STATUSES = ("DISPATCHED", "AT_PICKUP", "LOADED", "IN_TRANSIT", "AT_DELIVERY")
OPEN_STATUSES = ("POSTED", "TENDERED", "CONFIRMED", "BOOKED") + ACTIVE_STATUSES
DELIVERED_STATUSES = ("DELIVERED", "POD_RECEIVED", "INVOICED", "COMPLETED")
EXCLUDED_STATUSES = ("DRAFT", "CANCELLED")
AR_INVOICE_STATUSES = ("SENT", "SUBMITTED", "OVERDUE", "PARTIAL", "UNDER_REVIEW", "APPROVED")
PENDING_PAYMENT_STATUSES = ("PENDING", "PREPARED", "SUBMITTED", "APPROVED", "PROCESSING", "SCHEDULED")

REDACTED_LOAD_FIELDS = (
    "customer_rate", "gross_margin", "margin_percent", "margin_per_mile", "revenue_per_mile",
)
LOAD_SUMMARY_FIELDS = (
    "id", "reference_number", "load_number", "status", "origin_city", "origin_state",
    "dest_city", "dest_state", "rate", "customer_rate", "carrier_rate", "equipment_type",
    "pickup_date", "delivery_date", "distance",
)

METRICS = ("revenue", "loads", "on_time", "risk_loads", "top_lanes")
CARRIER_METRICS = ("loads", "on_time")
DEFAULT_DATE_RANGE = "last_30d"

CHECK_CALL_OVERDUE = timedelta(hours=6)
DEADLINE_WINDOW_HOURS = 12
TOP_LANES_LIMIT = 5

BONUS_PERCENT = {"PLATINUM": 3, "GOLD": 1.5}
NEXT_TIER = {
    "BRONZE": ("SILVER", "Maintain overall score >= 90"),
    "SILVER": ("GOLD", "Maintain overall score >= 95"),
    "GOLD": ("PLATINUM", "Maintain overall score >= 98"),
    "PLATINUM": (None, "You are at the highest tier!"),
    "GUEST": ("BRONZE", "Complete 3 loads with average score >= 70"),
}
DEFAULT_NEXT_TIER = ("GUEST", "Complete onboarding to join the carrier program")

SCORECARD_FIELDS = (
    "overall_score", "on_time_pickup_pct", "on_time_delivery_pct", "communication_score",
    "claim_ratio", "document_timeliness", "acceptance_rate", "gps_compliance_pct",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _denied(reason: str) -> Dict[str, Any]:
    return {"error": f"Access denied. {reason}".strip()}


def _guarded(operation: str) -> Callable:
    """Turn any data-access failure into an in-band error result."""
    def decorator(method: Callable) -> Callable:
        @functools.wraps(method)
        def wrapper(self, ctx: ToolContext, *args, **kwargs) -> Dict[str, Any]:
            try:
                return method(self, ctx, *args, **kwargs)
            except Exception as e:
                logger.error(
                    "tool_execution_failed",
                    operation=operation,
                    role=ctx.role,
                    user_id=ctx.user_id,
                    error=str(e),
                )
                return {"error": f"Failed to {operation}: {e}"}
        return wrapper
    return decorator


def load_scope(ctx: ToolContext) -> LoadScope:
    """Row scope for load queries made on behalf of a caller."""
    if isinstance(ctx, CarrierCaller):
        return LoadScope("carrier_id", ctx.user_id)
    if sees_all_rows(ctx):
        return ALL_LOADS
    return LoadScope("poster_id", ctx.user_id)


def sanitize_load(load: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
    """Copy of a load with shipper-side pricing removed for carriers."""
    copy = dict(load)
    if isinstance(ctx, CarrierCaller):
        for key in REDACTED_LOAD_FIELDS:
            copy.pop(key, None)
    return copy


def date_range_bounds(date_range: Optional[str], now: datetime) -> Tuple[datetime, datetime]:
    """Start and end of a named reporting window, in UTC.

    The window always ends at the last instant of the current UTC day.
    Unknown names fall back to the trailing 30 days.
    """
    midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    end = midnight + timedelta(days=1) - timedelta(microseconds=1)
    if date_range == "today":
        start = midnight
    elif date_range == "this_week":
        start = midnight - timedelta(days=midnight.weekday())
    elif date_range == "this_month":
        start = midnight.replace(day=1)
    else:
        start = midnight - timedelta(days=30)
    return start, end


def is_on_time(load: Dict[str, Any]) -> bool:
    """A delivered load is on time unless it arrived after its scheduled date."""
    actual = _parse_ts(load.get("actual_delivery_datetime"))
    if actual is None:
        return True
    scheduled = _parse_ts(load.get("delivery_date"))
    return scheduled is None or actual <= scheduled


def is_at_risk(
    now: datetime,
    delivery_date: Optional[datetime],
    last_check_call: Optional[datetime],
    last_risk_level: Optional[str],
) -> bool:
    """Whether an active load needs attention.

    Any one condition flags the load: no check call within 6 hours,
    delivery due within 12 hours, delivery date already passed, or a
    latest risk assessment of RED.
    """
    check_call_overdue = last_check_call is None or now - last_check_call > CHECK_CALL_OVERDUE
    approaching = past_due = False
    if delivery_date is not None:
        hours_until_delivery = (delivery_date - now).total_seconds() / 3600
        approaching = 0 < hours_until_delivery < DEADLINE_WINDOW_HOURS
        past_due = hours_until_delivery < 0
    return check_call_overdue or approaching or past_due or last_risk_level == "RED"


def _person_name(first: Optional[str], last: Optional[str]) -> str:
    return f"{first or ''} {last or ''}".strip()


def _shape_load(row: Dict[str, Any], fields: Optional[Tuple[str, ...]] = None) -> Dict[str, Any]:
    """Nest joined carrier and customer columns under their own keys."""
    load = {k: row.get(k) for k in fields} if fields else {
        k: v for k, v in row.items()
        if k not in ("carrier_first_name", "carrier_last_name", "carrier_company", "customer_name")
    }
    load["carrier"] = None
    if row.get("carrier_id"):
        load["carrier"] = {
            "id": row["carrier_id"],
            "name": row.get("carrier_company")
            or _person_name(row.get("carrier_first_name"), row.get("carrier_last_name")),
        }
    load["customer"] = None
    if row.get("customer_id"):
        load["customer"] = {"id": row["customer_id"], "name": row.get("customer_name")}
    return load


def _route(row: Dict[str, Any]) -> str:
    return (
        f"{row.get('origin_city')}, {row.get('origin_state')} -> "
        f"{row.get('dest_city')}, {row.get('dest_state')}"
    )


def _revenue(load: Dict[str, Any]) -> float:
    return load.get("customer_rate") or load.get("rate") or 0


def _cost(load: Dict[str, Any]) -> float:
    return load.get("carrier_rate") or load.get("total_carrier_pay") or 0


def _margin_pct(revenue: float, cost: float) -> float:
    return round((revenue - cost) / revenue * 100, 2) if revenue > 0 else 0


def _tier(profile: Dict[str, Any]) -> Optional[str]:
    srcpp = profile.get("srcpp_tier")
    return srcpp if srcpp and srcpp != "NONE" else profile.get("tier")


def _carrier_name(profile: Dict[str, Any]) -> str:
    return profile.get("company_name") or _person_name(profile.get("first_name"), profile.get("last_name"))


def _activity(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": entry["id"],
        "entity_type": entry["entity_type"],
        "entity_id": entry["entity_id"],
        "action": entry["action"],
        "performed_by": _person_name(entry.get("first_name"), entry.get("last_name")),
        "performed_at": entry["performed_at"],
        "changes": entry.get("changed_fields"),
    }


class DataAccess:
    """Role-scoped read access to freight data, one method per tool.

    Methods never raise: denials, missing records and failures all come
    back as ``{"error": ...}``.
    """

    def __init__(self, repository: DomainRepository, clock: Callable[[], datetime] = _utcnow):
        self.repository = repository
        self.clock = clock

    @_guarded("fetch load info")
    def get_load_info(self, ctx: ToolContext, load_id: Optional[str] = None) -> Dict[str, Any]:
        scope = load_scope(ctx)
        if load_id:
            row = self.repository.find_load(scope, load_id)
            if row is None:
                return {"error": "Load not found or you do not have access to this load."}
            load = _shape_load(row)
            load["check_calls"] = self.repository.check_calls(row["id"], limit=5)
            load["invoices"] = self.repository.invoices_for_load(row["id"])
            load["carrier_payments"] = self.repository.payments_for_load(row["id"])
            return {"load": sanitize_load(load, ctx)}

        rows = self.repository.query_loads(scope, limit=10)
        loads = [sanitize_load(_shape_load(r, LOAD_SUMMARY_FIELDS), ctx) for r in rows]
        return {"loads": loads, "count": len(loads)}

    @_guarded("fetch loads by status")
    def get_loads_by_status(self, ctx: ToolContext, status: Optional[str]) -> Dict[str, Any]:
        if not status:
            return {"error": "Please provide a load status."}
        status = "_".join(status.upper().split())
        rows = self.repository.query_loads(load_scope(ctx), statuses=[status], limit=20)
        loads = [sanitize_load(_shape_load(r, LOAD_SUMMARY_FIELDS), ctx) for r in rows]
        return {"status": status, "loads": loads, "count": len(loads)}

    @_guarded("fetch carrier info")
    def get_carrier_info(self, ctx: ToolContext, carrier_id: Optional[str] = None) -> Dict[str, Any]:
        if isinstance(ctx, PublicCaller):
            return _denied("Carrier profiles are not available for your role.")
        if isinstance(ctx, CarrierCaller):
            if carrier_id and carrier_id not in (ctx.carrier_id, ctx.user_id):
                return _denied("Carrier users can only view their own profile.")
            lookup = carrier_id or ctx.user_id
        elif carrier_id:
            lookup = carrier_id
        else:
            return {"error": "Please provide a carrier ID, MC number, or DOT number to look up."}

        profile = self.repository.find_carrier_profile(lookup)
        if profile is None:
            return {"error": "Carrier profile not found."}

        since = (self.clock() - timedelta(days=30)).isoformat()
        scorecards = self.repository.scorecards(profile["id"], limit=1)
        return {
            "carrier": {
                "profile_id": profile["id"],
                "user_id": profile["user_id"],
                "name": _carrier_name(profile),
                "email": profile.get("email"),
                "phone": profile.get("phone") or profile.get("contact_phone"),
                "mc_number": profile.get("mc_number"),
                "dot_number": profile.get("dot_number"),
                "tier": _tier(profile),
                "srcpp_total_loads": profile.get("srcpp_total_loads"),
                "srcpp_total_miles": profile.get("srcpp_total_miles"),
                "equipment_types": profile.get("equipment_types"),
                "operating_regions": profile.get("operating_regions"),
                "insurance_expiry": profile.get("insurance_expiry"),
                "safety_rating": profile.get("safety_rating"),
                "onboarding_status": profile.get("onboarding_status"),
                "application_status": profile.get("status"),
                "is_active": bool(profile.get("is_active")),
                "number_of_trucks": profile.get("number_of_trucks"),
                "number_of_drivers": profile.get("number_of_drivers"),
                "payment_preference": profile.get("payment_preference"),
                "latest_scorecard": scorecards[0] if scorecards else None,
                "compliance_alerts": self.repository.compliance_alerts(profile["id"], limit=5),
                "recent_loads_count": self.repository.count_carrier_loads(profile["user_id"], since=since),
                "total_loads_count": self.repository.count_carrier_loads(profile["user_id"]),
            }
        }

    @_guarded("fetch shipper info")
    def get_shipper_info(self, ctx: ToolContext, shipper_id: Optional[str] = None) -> Dict[str, Any]:
        if isinstance(ctx, CarrierCaller):
            return _denied("Carrier users cannot view shipper/customer information.")
        if isinstance(ctx, PublicCaller):
            return _denied("Shipper information is not available for your role.")

        if shipper_id:
            customer = self.repository.find_customer(shipper_id)
            if customer is None:
                return {"error": "Shipper/customer not found."}
            if isinstance(ctx, BrokerCaller) and not self.repository.poster_has_customer(ctx.user_id, customer["id"]):
                return _denied("You do not have loads with this shipper.")

            recent = self.repository.query_loads(
                ALL_LOADS, customer_id=customer["id"], order_by="l.created_at DESC", limit=5,
            )
            return {
                "shipper": {
                    **customer,
                    "total_loads": self.repository.customer_load_count(customer["id"]),
                    "recent_loads": [
                        {k: r.get(k) for k in (
                            "id", "reference_number", "status", "rate", "customer_rate", "origin_city",
                            "origin_state", "dest_city", "dest_state", "pickup_date",
                        )}
                        for r in recent
                    ],
                    "recent_invoices": self.repository.invoices_for_customer(customer["id"], limit=10),
                }
            }

        if isinstance(ctx, (AdminCaller, AccountingCaller)):
            customers = self.repository.list_customers(limit=20)
        else:
            customers = self.repository.customers_for_poster(ctx.user_id, limit=20)
        shippers = [
            {
                "id": c["id"],
                "name": c["name"],
                "email": c.get("email"),
                "phone": c.get("phone"),
                "status": c.get("status"),
                "credit_limit": c.get("credit_limit"),
                "credit_status": c.get("credit_status"),
                "payment_terms": c.get("payment_terms"),
                "loads_count": self.repository.customer_load_count(c["id"]),
                "credit_grade": c.get("credit_grade"),
                "avg_days_to_pay": c.get("avg_days_to_pay"),
            }
            for c in customers
        ]
        return {"shippers": shippers, "count": len(shippers)}

    @_guarded("fetch analytics")
    def get_analytics_summary(
        self, ctx: ToolContext, metric: Optional[str], date_range: Optional[str] = None
    ) -> Dict[str, Any]:
        if isinstance(ctx, CarrierCaller) and metric not in CARRIER_METRICS:
            return _denied("Carrier users can only view load and on-time metrics.")
        if metric == "risk_loads" and isinstance(ctx, PublicCaller):
            return _denied("Risk analytics are not available for your role.")
        if metric not in METRICS:
            return {"error": f'Unknown metric "{metric}". Supported: {", ".join(METRICS)}'}

        now = self.clock()
        start, end = date_range_bounds(date_range, now)
        period = date_range or DEFAULT_DATE_RANGE
        scope = load_scope(ctx)

        if metric == "revenue":
            result = self._revenue_metric(scope, start, end)
        elif metric == "loads":
            result = self._loads_metric(scope, start, end)
        elif metric == "on_time":
            result = self._on_time_metric(scope, start, end)
        elif metric == "risk_loads":
            result = self._risk_metric(scope, now)
        else:
            result = self._top_lanes_metric(scope, start, end)
        return {"metric": metric, "period": period, **result}

    def _revenue_metric(self, scope: LoadScope, start: datetime, end: datetime) -> Dict[str, Any]:
        loads = self.repository.query_loads(
            scope, exclude_statuses=EXCLUDED_STATUSES,
            date_column="pickup_date", start=start.isoformat(), end=end.isoformat(),
        )
        revenue = sum(_revenue(l) for l in loads)
        cost = sum(_cost(l) for l in loads)
        miles = sum(l.get("distance") or 0 for l in loads)
        return {
            "total_revenue": round(revenue, 2),
            "total_cost": round(cost, 2),
            "gross_margin": round(revenue - cost, 2),
            "margin_pct": _margin_pct(revenue, cost),
            "load_count": len(loads),
            "total_miles": miles,
            "revenue_per_load": round(revenue / len(loads), 2) if loads else 0,
            "revenue_per_mile": round(revenue / miles, 2) if miles > 0 else 0,
        }

    def _loads_metric(self, scope: LoadScope, start: datetime, end: datetime) -> Dict[str, Any]:
        loads = self.repository.query_loads(
            scope, date_column="created_at", start=start.isoformat(), end=end.isoformat(),
        )
        statuses = Counter(l["status"] for l in loads)
        return {
            "total_loads": len(loads),
            "active_loads": sum(statuses[s] for s in ACTIVE_STATUSES),
            "status_breakdown": dict(statuses),
        }

    def _on_time_metric(self, scope: LoadScope, start: datetime, end: datetime) -> Dict[str, Any]:
        loads = self.repository.query_loads(
            scope, statuses=DELIVERED_STATUSES,
            date_column="delivery_date", start=start.isoformat(), end=end.isoformat(),
        )
        on_time = sum(1 for l in loads if is_on_time(l))
        late = len(loads) - on_time
        return {
            "total_delivered": len(loads),
            "on_time": on_time,
            "late": late,
            "on_time_percentage": round(on_time / len(loads) * 100, 2) if loads else 100,
        }

    def _risk_metric(self, scope: LoadScope, now: datetime) -> Dict[str, Any]:
        active = self.repository.query_loads(scope, statuses=ACTIVE_STATUSES)
        flagged = []
        for load in active:
            calls = self.repository.check_calls(load["id"], limit=1)
            last_call = _parse_ts(calls[0]["created_at"]) if calls else None
            risk_level = self.repository.latest_risk_level(load["id"])
            if not is_at_risk(now, _parse_ts(load.get("delivery_date")), last_call, risk_level):
                continue
            shaped = _shape_load(load, ("id", "reference_number", "status", "delivery_date"))
            flagged.append({
                "id": load["id"],
                "reference_number": load.get("reference_number"),
                "status": load["status"],
                "route": _route(load),
                "delivery_date": load.get("delivery_date"),
                "carrier_name": shaped["carrier"]["name"] if shaped["carrier"] else "Unassigned",
                "last_check_call": calls[0]["created_at"] if calls else None,
                "risk_level": risk_level or "UNKNOWN",
            })
        return {
            "total_active_loads": len(active),
            "risk_loads_count": len(flagged),
            "risk_loads": flagged,
        }

    def _top_lanes_metric(self, scope: LoadScope, start: datetime, end: datetime) -> Dict[str, Any]:
        loads = self.repository.query_loads(
            scope, exclude_statuses=EXCLUDED_STATUSES,
            date_column="pickup_date", start=start.isoformat(), end=end.isoformat(),
        )
        lanes: Dict[Tuple[str, str], Dict[str, float]] = {}
        for load in loads:
            lane = lanes.setdefault(
                (load.get("origin_state"), load.get("dest_state")),
                {"loads": 0, "revenue": 0, "cost": 0, "miles": 0},
            )
            lane["loads"] += 1
            lane["revenue"] += _revenue(load)
            lane["cost"] += load.get("carrier_rate") or 0
            lane["miles"] += load.get("distance") or 0

        ranked = sorted(lanes.items(), key=lambda item: item[1]["loads"], reverse=True)
        return {
            "top_lanes": [
                {
                    "lane": f"{origin} -> {dest}",
                    "loads": lane["loads"],
                    "revenue": round(lane["revenue"], 2),
                    "margin": round(lane["revenue"] - lane["cost"], 2),
                    "avg_rate_per_mile": round(lane["revenue"] / lane["miles"], 2) if lane["miles"] > 0 else 0,
                }
                for (origin, dest), lane in ranked[:TOP_LANES_LIMIT]
            ]
        }

    @_guarded("fetch compliance status")
    def get_compliance_status(self, ctx: ToolContext, carrier_id: Optional[str] = None) -> Dict[str, Any]:
        if isinstance(ctx, PublicCaller):
            return _denied("Compliance status is not available for your role.")
        if isinstance(ctx, CarrierCaller):
            entity_id = ctx.carrier_id
            if entity_id is None:
                profile = self.repository.find_carrier_profile(ctx.user_id)
                if profile is None or profile["user_id"] != ctx.user_id:
                    return {"error": "Carrier profile not found."}
                entity_id = profile["id"]
        elif carrier_id:
            profile = self.repository.find_carrier_profile(carrier_id)
            entity_id = profile["id"] if profile else carrier_id
        else:
            entity_id = None

        alerts = self.repository.compliance_alerts(entity_id, limit=25)
        return {
            "alerts": [
                {k: a.get(k) for k in (
                    "id", "type", "severity", "entity_type", "entity_id", "entity_name",
                    "expiry_date", "status", "created_at",
                )}
                for a in alerts
            ],
            "total_alerts": len(alerts),
            "severity_breakdown": dict(Counter(a["severity"] for a in alerts)),
        }

    @_guarded("fetch financial summary")
    def get_financial_summary(self, ctx: ToolContext) -> Dict[str, Any]:
        if isinstance(ctx, CarrierCaller):
            return _denied("Carrier users cannot view financial summaries.")
        if isinstance(ctx, PublicCaller):
            return _denied("Financial summaries are not available for your role.")

        now = self.clock()
        start, end = date_range_bounds(DEFAULT_DATE_RANGE, now)
        loads = self.repository.query_loads(
            load_scope(ctx), exclude_statuses=EXCLUDED_STATUSES,
            date_column="pickup_date", start=start.isoformat(), end=end.isoformat(),
        )
        revenue = sum(_revenue(l) for l in loads)
        cost = sum(_cost(l) for l in loads)

        if isinstance(ctx, BrokerCaller):
            return {
                "view": "limited",
                "total_revenue": round(revenue, 2),
                "total_cost": round(cost, 2),
                "gross_margin": round(revenue - cost, 2),
                "margin_pct": _margin_pct(revenue, cost),
                "load_count": len(loads),
                "period": DEFAULT_DATE_RANGE,
            }

        total_ar = overdue_ar = 0.0
        for invoice in self.repository.invoices_with_status(AR_INVOICE_STATUSES):
            outstanding = (invoice.get("total_amount") or invoice.get("amount") or 0) - (invoice.get("paid_amount") or 0)
            if outstanding <= 0:
                continue
            total_ar += outstanding
            due = _parse_ts(invoice.get("due_date"))
            if due is not None and due < now:
                overdue_ar += outstanding

        total_ap = overdue_ap = 0.0
        for payment in self.repository.carrier_payments(statuses=PENDING_PAYMENT_STATUSES):
            amount = payment.get("net_amount") or 0
            total_ap += amount
            due = _parse_ts(payment.get("due_date"))
            if due is not None and due < now:
                overdue_ap += amount

        return {
            "view": "full",
            "total_ar": round(total_ar, 2),
            "overdue_ar": round(overdue_ar, 2),
            "total_ap": round(total_ap, 2),
            "overdue_ap": round(overdue_ap, 2),
            "revenue_30d": round(revenue, 2),
            "cost_30d": round(cost, 2),
            "gross_margin_30d": round(revenue - cost, 2),
            "margin_pct_30d": _margin_pct(revenue, cost),
            "load_count_30d": len(loads),
        }

    @_guarded("search loads")
    def search_loads(self, ctx: ToolContext, query: Optional[str]) -> Dict[str, Any]:
        if not query or not query.strip():
            return {"error": "Please provide a search query."}
        q = query.strip()
        rows = self.repository.query_loads(load_scope(ctx), search=q, limit=15)
        results = [sanitize_load(_shape_load(r, LOAD_SUMMARY_FIELDS), ctx) for r in rows]
        return {"query": q, "results": results, "count": len(results)}

    @_guarded("search carriers")
    def search_carriers(self, ctx: ToolContext, query: Optional[str]) -> Dict[str, Any]:
        if isinstance(ctx, CarrierCaller):
            return _denied("Carrier users cannot search other carriers.")
        if isinstance(ctx, PublicCaller):
            return _denied("Carrier search is not available for your role.")
        if not query or not query.strip():
            return {"error": "Please provide a search query."}

        q = query.strip()
        results = [
            {
                "profile_id": p["id"],
                "user_id": p["user_id"],
                "name": _carrier_name(p),
                "mc_number": p.get("mc_number"),
                "dot_number": p.get("dot_number"),
                "tier": _tier(p),
                "srcpp_total_loads": p.get("srcpp_total_loads"),
                "srcpp_total_miles": p.get("srcpp_total_miles"),
                "equipment_types": p.get("equipment_types"),
                "operating_regions": p.get("operating_regions"),
                "application_status": p.get("status"),
                "is_active": bool(p.get("is_active")),
                "loads_count": self.repository.count_carrier_loads(p["user_id"]),
            }
            for p in self.repository.search_carrier_profiles(q, limit=15)
        ]
        return {"query": q, "results": results, "count": len(results)}

    @_guarded("fetch recent activity")
    def get_recent_activity(self, ctx: ToolContext) -> Dict[str, Any]:
        if sees_all_rows(ctx):
            entries = self.repository.audit_entries(limit=10)
        else:
            load_ids = self.repository.load_ids(load_scope(ctx), limit=50)
            entries = self.repository.audit_entries(load_ids=load_ids, performer_id=ctx.user_id, limit=10)
        activities = [_activity(e) for e in entries]
        return {"activities": activities, "count": len(activities)}

    @_guarded("fetch my loads")
    def get_my_loads(self, ctx: ToolContext) -> Dict[str, Any]:
        scope = load_scope(ctx)
        active = self.repository.query_loads(
            scope, statuses=OPEN_STATUSES, order_by="l.pickup_date ASC", limit=20,
        )
        completed = self.repository.query_loads(scope, statuses=DELIVERED_STATUSES, limit=10)
        active_fields = LOAD_SUMMARY_FIELDS + ("actual_pickup_datetime", "actual_delivery_datetime", "weight")
        completed_fields = LOAD_SUMMARY_FIELDS + ("actual_delivery_datetime",)
        return {
            "active_loads": [sanitize_load(_shape_load(r, active_fields), ctx) for r in active],
            "recent_completed": [sanitize_load(_shape_load(r, completed_fields), ctx) for r in completed],
            "active_count": len(active),
            "completed_count": len(completed),
        }

    @_guarded("fetch payments")
    def get_my_payments(self, ctx: ToolContext) -> Dict[str, Any]:
        if isinstance(ctx, BrokerCaller):
            return _denied("Broker/AE users cannot view payment details.")
        if isinstance(ctx, PublicCaller):
            return _denied("Payment details are not available for your role.")

        if isinstance(ctx, CarrierCaller):
            payments = self.repository.carrier_payments(carrier_id=ctx.user_id, limit=20)
            total_paid = total_pending = total_fees = 0.0
            for p in payments:
                if p["status"] == "PAID":
                    total_paid += p.get("net_amount") or 0
                elif p["status"] in PENDING_PAYMENT_STATUSES:
                    total_pending += p.get("net_amount") or 0
                total_fees += p.get("quick_pay_fee_amount") or 0
            return {
                "payments": [
                    {
                        **self._payment(p),
                        "route": _route(p) if p.get("load_id") else None,
                    }
                    for p in payments
                ],
                "summary": {
                    "total_paid": round(total_paid, 2),
                    "total_pending": round(total_pending, 2),
                    "total_quick_pay_fees": round(total_fees, 2),
                    "payment_count": len(payments),
                },
            }

        payments = self.repository.carrier_payments(limit=25)
        return {
            "payments": [
                {
                    **self._payment(p),
                    "carrier_id": p.get("carrier_id"),
                    "carrier_name": p.get("carrier_company")
                    or _person_name(p.get("carrier_first_name"), p.get("carrier_last_name")),
                }
                for p in payments
            ],
            "summary": {
                "status_breakdown": dict(Counter(p["status"] for p in payments)),
                "total_amount": round(sum(p.get("net_amount") or 0 for p in payments), 2),
                "payment_count": len(payments),
            },
        }

    @staticmethod
    def _payment(p: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": p["id"],
            "payment_number": p.get("payment_number"),
            "amount": p.get("amount"),
            "net_amount": p.get("net_amount"),
            "quick_pay_fee": p.get("quick_pay_fee_amount"),
            "payment_tier": p.get("payment_tier"),
            "status": p["status"],
            "payment_method": p.get("payment_method"),
            "due_date": p.get("due_date"),
            "paid_at": p.get("paid_at"),
            "load_id": p.get("load_id"),
            "load_ref": p.get("load_reference"),
        }

    @_guarded("fetch score")
    def get_my_score(self, ctx: ToolContext, carrier_id: Optional[str] = None) -> Dict[str, Any]:
        """Carrier program score.

        Carriers always get their own score. Brokers, operations and admins
        may look up a carrier by id; everyone else is denied.
        """
        if isinstance(ctx, CarrierCaller):
            profile = self.repository.find_carrier_profile(ctx.user_id)
            if profile is None or profile["user_id"] != ctx.user_id:
                return {"error": "Carrier profile not found."}
            result = self._score(profile)
            result["stats"]["total_bonus_earned"] = round(sum(
                b.get("amount") or 0 for b in result["recent_bonuses"] if b["status"] == "PAID"
            ), 2)
            return result

        may_lookup = isinstance(ctx, (AdminCaller, BrokerCaller, OperationsCaller))
        if not carrier_id:
            if isinstance(ctx, (AdminCaller, BrokerCaller)):
                return {"error": "Please provide a carrier_id to look up a carrier's score."}
            return _denied("")
        if not may_lookup:
            return _denied("")

        profile = self.repository.find_carrier_profile(carrier_id)
        if profile is None:
            return {"error": "Carrier profile not found."}
        result = self._score(profile)
        result["carrier"] = {
            "profile_id": profile["id"],
            "user_id": profile["user_id"],
            "name": _carrier_name(profile),
        }
        return result

    def _score(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        tier = _tier(profile)
        scorecards = self.repository.scorecards(profile["id"], limit=5)
        latest = scorecards[0] if scorecards else {}
        next_tier, requirement = NEXT_TIER.get(tier, DEFAULT_NEXT_TIER)
        bonuses = self.repository.bonuses(profile["id"], limit=5)
        return {
            "score": {"current_tier": tier, **{f: latest.get(f) or 0 for f in SCORECARD_FIELDS}},
            "stats": {
                "total_loads": profile.get("srcpp_total_loads"),
                "total_miles": profile.get("srcpp_total_miles"),
                "bonus_percentage": BONUS_PERCENT.get(tier, 0),
            },
            "next_tier_info": {"next_tier": next_tier, "requirement": requirement},
            "recent_scorecards": [
                {k: s.get(k) for k in ("period", "overall_score", "tier_at_time", "bonus_earned", "calculated_at")}
                for s in scorecards
            ],
            "recent_bonuses": [
                {k: b.get(k) for k in ("type", "amount", "status", "description", "created_at")}
                for b in bonuses
            ],
        }
