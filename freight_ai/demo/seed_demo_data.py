# freight_ai/demo/seed_demo_data.py

from datetime import datetime, timedelta, timezone
from typing import Optional

from freight_ai.storage.domain import DomainRepository
from freight_ai.storage.models import UsageRecord
from freight_ai.storage.repository import UsageRepository


def _iso(moment: datetime) -> str:
    return moment.isoformat()


def seed_demo_data(domain: DomainRepository, usage: UsageRepository, now: Optional[datetime] = None) -> int:
    """Insert a small brokerage data set plus some AI usage history.

    Returns:
        Number of loads inserted
    """
    now = now or datetime.now(timezone.utc)
    domain.initialize_schema()
    usage.initialize_schema()

    users = [
        {"id": "u-broker", "first_name": "Dana", "last_name": "Reyes", "email": "dana@example.com", "company": None},
        {"id": "u-ops", "first_name": "Sam", "last_name": "Okafor", "email": "sam@example.com", "company": None},
        {"id": "u-carrier-1", "first_name": "Lee", "last_name": "Park", "email": "lee@example.com",
         "company": "Prairie Wind Transport"},
        {"id": "u-carrier-2", "first_name": "Ana", "last_name": "Silva", "email": "ana@example.com",
         "company": "Blue Ridge Haulers"},
    ]
    for user in users:
        domain.insert("users", user)

    domain.insert("customers", {
        "id": "cust-acme", "name": "Acme Foods", "type": "SHIPPER", "email": "ship@acme.example",
        "city": "Chicago", "state": "IL", "status": "ACTIVE", "credit_limit": 50000,
        "credit_status": "APPROVED", "payment_terms": "NET30", "credit_grade": "A",
        "avg_days_to_pay": 27, "updated_at": _iso(now),
    })
    domain.insert("customers", {
        "id": "cust-delta", "name": "Delta Paper Co", "type": "SHIPPER", "city": "Atlanta", "state": "GA",
        "status": "ACTIVE", "credit_limit": 20000, "credit_status": "REVIEW", "payment_terms": "NET45",
        "credit_grade": "C", "avg_days_to_pay": 52, "updated_at": _iso(now - timedelta(days=3)),
    })

    domain.insert("carrier_profiles", {
        "id": "cp-1", "user_id": "u-carrier-1", "company_name": "Prairie Wind Transport",
        "mc_number": "MC100200", "dot_number": "3001002", "tier": "SILVER", "srcpp_tier": "GOLD",
        "srcpp_total_loads": 42, "srcpp_total_miles": 38400, "equipment_types": "DRY_VAN,REEFER",
        "status": "APPROVED", "onboarding_status": "COMPLETE", "number_of_trucks": 12,
    })
    domain.insert("carrier_profiles", {
        "id": "cp-2", "user_id": "u-carrier-2", "company_name": "Blue Ridge Haulers",
        "mc_number": "MC300400", "dot_number": "3003004", "tier": "BRONZE", "srcpp_tier": "NONE",
        "srcpp_total_loads": 5, "srcpp_total_miles": 4100, "equipment_types": "FLATBED",
        "status": "APPROVED", "onboarding_status": "COMPLETE", "number_of_trucks": 3,
    })

    loads = [
        ("L-1001", "IN_TRANSIT", "u-carrier-1", "cust-acme", "Chicago", "IL", "Dallas", "TX", 3200, 2600, 920,
         now - timedelta(days=1), now + timedelta(hours=8), None),
        ("L-1002", "DISPATCHED", "u-carrier-2", "cust-delta", "Atlanta", "GA", "Charlotte", "NC", 1400, 1150, 245,
         now - timedelta(hours=4), now + timedelta(days=2), None),
        ("L-1003", "DELIVERED", "u-carrier-1", "cust-acme", "Chicago", "IL", "Dallas", "TX", 3100, 2500, 920,
         now - timedelta(days=6), now - timedelta(days=4), now - timedelta(days=4, hours=2)),
        ("L-1004", "COMPLETED", "u-carrier-2", "cust-acme", "Denver", "CO", "Phoenix", "AZ", 2700, 2250, 820,
         now - timedelta(days=12), now - timedelta(days=10), now - timedelta(days=9, hours=20)),
        ("L-1005", "POSTED", None, "cust-delta", "Atlanta", "GA", "Miami", "FL", 2100, None, 660,
         now + timedelta(days=2), now + timedelta(days=3), None),
    ]
    for ref, status, carrier, customer, oc, os_, dc, ds, customer_rate, carrier_rate, miles, pickup, delivery, actual in loads:
        margin = customer_rate - carrier_rate if carrier_rate else None
        domain.insert("loads", {
            "id": f"load-{ref}", "reference_number": ref, "load_number": ref.replace("L-", "LN"),
            "status": status, "origin_city": oc, "origin_state": os_, "dest_city": dc, "dest_state": ds,
            "rate": customer_rate, "customer_rate": customer_rate, "carrier_rate": carrier_rate,
            "gross_margin": margin, "margin_percent": round(margin / customer_rate * 100, 2) if margin else None,
            "margin_per_mile": round(margin / miles, 2) if margin else None,
            "revenue_per_mile": round(customer_rate / miles, 2), "equipment_type": "DRY_VAN",
            "commodity": "Packaged food" if customer == "cust-acme" else "Paper rolls", "distance": miles,
            "pickup_date": _iso(pickup), "delivery_date": _iso(delivery),
            "actual_delivery_datetime": _iso(actual) if actual else None,
            "carrier_id": carrier, "poster_id": "u-broker", "customer_id": customer,
            "created_at": _iso(pickup - timedelta(days=1)), "updated_at": _iso(now - timedelta(hours=1)),
        })

    domain.insert("check_calls", {"id": "cc-1", "load_id": "load-L-1001", "status": "ON_TIME",
                                  "location": "Springfield, MO", "created_at": _iso(now - timedelta(hours=7))})
    domain.insert("check_calls", {"id": "cc-2", "load_id": "load-L-1002", "status": "ON_TIME",
                                  "location": "Atlanta, GA", "created_at": _iso(now - timedelta(hours=1))})
    domain.insert("risk_logs", {"id": "rl-1", "load_id": "load-L-1001", "level": "AMBER",
                                "created_at": _iso(now - timedelta(hours=2))})

    domain.insert("invoices", {"id": "inv-1", "invoice_number": "INV-3001", "load_id": "load-L-1003",
                               "status": "SENT", "amount": 3100, "total_amount": 3100, "paid_amount": 0,
                               "due_date": _iso(now + timedelta(days=20)), "created_at": _iso(now - timedelta(days=4))})
    domain.insert("invoices", {"id": "inv-2", "invoice_number": "INV-3002", "load_id": "load-L-1004",
                               "status": "OVERDUE", "amount": 2700, "total_amount": 2700, "paid_amount": 700,
                               "due_date": _iso(now - timedelta(days=2)), "created_at": _iso(now - timedelta(days=9))})

    domain.insert("carrier_payments", {"id": "cpay-1", "payment_number": "PAY-01", "carrier_id": "u-carrier-1",
                                       "load_id": "load-L-1003", "amount": 2500, "net_amount": 2425,
                                       "quick_pay_fee_amount": 75, "payment_tier": "QUICK_PAY", "status": "PAID",
                                       "paid_at": _iso(now - timedelta(days=2)), "created_at": _iso(now - timedelta(days=3))})
    domain.insert("carrier_payments", {"id": "cpay-2", "payment_number": "PAY-02", "carrier_id": "u-carrier-2",
                                       "load_id": "load-L-1004", "amount": 2250, "net_amount": 2250,
                                       "payment_tier": "STANDARD", "status": "PENDING",
                                       "due_date": _iso(now + timedelta(days=10)), "created_at": _iso(now - timedelta(days=8))})

    domain.insert("compliance_alerts", {"id": "ca-1", "type": "INSURANCE_EXPIRING", "severity": "HIGH",
                                        "entity_type": "CARRIER", "entity_id": "cp-2",
                                        "entity_name": "Blue Ridge Haulers", "expiry_date": _iso(now + timedelta(days=9)),
                                        "status": "ACTIVE", "created_at": _iso(now - timedelta(days=1))})

    domain.insert("carrier_scorecards", {"id": "sc-1", "carrier_profile_id": "cp-1", "period": "WEEKLY",
                                         "overall_score": 96.4, "on_time_pickup_pct": 98, "on_time_delivery_pct": 95,
                                         "communication_score": 97, "tier_at_time": "GOLD", "bonus_earned": 46.5,
                                         "calculated_at": _iso(now - timedelta(days=2))})
    domain.insert("carrier_bonuses", {"id": "bn-1", "carrier_profile_id": "cp-1", "type": "PERFORMANCE",
                                      "amount": 46.5, "status": "PAID", "description": "Weekly tier bonus",
                                      "created_at": _iso(now - timedelta(days=2))})

    domain.insert("audit_entries", {"id": "ae-1", "entity_type": "Load", "entity_id": "load-L-1001",
                                    "action": "STATUS_CHANGE", "performed_by_id": "u-ops",
                                    "performed_at": _iso(now - timedelta(hours=3)), "changed_fields": "status"})
    domain.insert("audit_entries", {"id": "ae-2", "entity_type": "Load", "entity_id": "load-L-1005",
                                    "action": "CREATE", "performed_by_id": "u-broker",
                                    "performed_at": _iso(now - timedelta(hours=5)), "changed_fields": None})

    history = [
        ("openai", "gpt-4o-mini", 1800, 420, 0.000522, "general_chat", "chat", True, None),
        ("openai", "gpt-4o-mini", 2400, 610, 0.000726, "general_chat", "chat", True, None),
        ("anthropic", "claude-3-5-sonnet-20241022", 3200, 900, 0.0231, "rate_prediction", "ai_router", True, None),
        ("openai", "gpt-4o", 0, 0, 0.00, "carrier_match", "ai_router", False, "openai API error 429: rate limited"),
        ("anthropic", "claude-3-5-sonnet-20241022", 2900, 700, 0.0192, "carrier_match", "ai_router", True, None),
    ]
    for i, (provider, model, tokens_in, tokens_out, cost, query_type, source, success, error) in enumerate(history):
        usage.create(UsageRecord(
            provider=provider,
            model=model,
            input_tokens=tokens_in,
            output_tokens=tokens_out,
            cost_usd=cost,
            latency_ms=800 + i * 150,
            query_type=query_type,
            source=source,
            success=success,
            error_type=error,
            user_id="u-broker",
            created_at=now - timedelta(hours=i * 5),
        ))

    return len(loads)
