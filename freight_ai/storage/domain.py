"""
Read-only repository over freight domain data.

Loads, carriers, customers, invoices, carrier payments, compliance alerts
and audit entries. Row scoping is supplied by the caller as a ``LoadScope``
and compiled into the WHERE clause of every load query.
"""

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .db import DEFAULT_DB_PATH, get_connection


@dataclass(frozen=True)
class LoadScope:
    """Row filter for load queries.

    ``column`` is the loads column that must equal ``value``; no column means
    all rows.
    """
    column: Optional[str] = None
    value: Optional[str] = None

    def clause(self, alias: str = "l") -> Tuple[str, List[Any]]:
        if self.column is None:
            return "1 = 1", []
        if self.column not in ("carrier_id", "poster_id"):
            raise ValueError(f"Unsupported scope column: {self.column}")
        return f"{alias}.{self.column} = ?", [self.value]


ALL_LOADS = LoadScope()

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    first_name TEXT,
    last_name TEXT,
    email TEXT,
    company TEXT,
    phone TEXT,
    is_active INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS customers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT,
    contact_name TEXT,
    email TEXT,
    phone TEXT,
    city TEXT,
    state TEXT,
    status TEXT,
    industry TEXT,
    credit_limit REAL,
    credit_status TEXT,
    payment_terms TEXT,
    avg_loads_per_month REAL,
    credit_grade TEXT,
    avg_days_to_pay REAL,
    updated_at TEXT
);
CREATE TABLE IF NOT EXISTS loads (
    id TEXT PRIMARY KEY,
    reference_number TEXT,
    load_number TEXT,
    status TEXT NOT NULL,
    origin_city TEXT,
    origin_state TEXT,
    dest_city TEXT,
    dest_state TEXT,
    rate REAL,
    customer_rate REAL,
    carrier_rate REAL,
    total_carrier_pay REAL,
    gross_margin REAL,
    margin_percent REAL,
    margin_per_mile REAL,
    revenue_per_mile REAL,
    equipment_type TEXT,
    commodity TEXT,
    weight REAL,
    distance REAL,
    pickup_date TEXT,
    delivery_date TEXT,
    actual_pickup_datetime TEXT,
    actual_delivery_datetime TEXT,
    carrier_id TEXT REFERENCES users(id),
    poster_id TEXT REFERENCES users(id),
    customer_id TEXT REFERENCES customers(id),
    created_at TEXT,
    updated_at TEXT
);
CREATE TABLE IF NOT EXISTS check_calls (
    id TEXT PRIMARY KEY,
    load_id TEXT NOT NULL REFERENCES loads(id),
    status TEXT,
    location TEXT,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS risk_logs (
    id TEXT PRIMARY KEY,
    load_id TEXT NOT NULL REFERENCES loads(id),
    level TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS carrier_profiles (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE REFERENCES users(id),
    company_name TEXT,
    mc_number TEXT,
    dot_number TEXT,
    contact_name TEXT,
    contact_phone TEXT,
    tier TEXT,
    srcpp_tier TEXT,
    srcpp_total_loads INTEGER DEFAULT 0,
    srcpp_total_miles REAL DEFAULT 0,
    equipment_types TEXT,
    operating_regions TEXT,
    insurance_expiry TEXT,
    safety_rating TEXT,
    onboarding_status TEXT,
    status TEXT,
    number_of_trucks INTEGER,
    number_of_drivers INTEGER,
    payment_preference TEXT
);
CREATE TABLE IF NOT EXISTS carrier_scorecards (
    id TEXT PRIMARY KEY,
    carrier_profile_id TEXT NOT NULL REFERENCES carrier_profiles(id),
    period TEXT,
    overall_score REAL,
    on_time_pickup_pct REAL,
    on_time_delivery_pct REAL,
    communication_score REAL,
    claim_ratio REAL,
    document_timeliness REAL,
    acceptance_rate REAL,
    gps_compliance_pct REAL,
    tier_at_time TEXT,
    bonus_earned REAL,
    calculated_at TEXT
);
CREATE TABLE IF NOT EXISTS carrier_bonuses (
    id TEXT PRIMARY KEY,
    carrier_profile_id TEXT NOT NULL REFERENCES carrier_profiles(id),
    type TEXT,
    amount REAL,
    status TEXT,
    description TEXT,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS invoices (
    id TEXT PRIMARY KEY,
    invoice_number TEXT,
    load_id TEXT REFERENCES loads(id),
    status TEXT,
    amount REAL,
    total_amount REAL,
    paid_amount REAL,
    due_date TEXT,
    paid_at TEXT,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS carrier_payments (
    id TEXT PRIMARY KEY,
    payment_number TEXT,
    carrier_id TEXT REFERENCES users(id),
    load_id TEXT REFERENCES loads(id),
    amount REAL,
    net_amount REAL,
    quick_pay_fee_amount REAL,
    payment_tier TEXT,
    status TEXT,
    payment_method TEXT,
    due_date TEXT,
    paid_at TEXT,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS compliance_alerts (
    id TEXT PRIMARY KEY,
    type TEXT,
    severity TEXT,
    entity_type TEXT,
    entity_id TEXT,
    entity_name TEXT,
    expiry_date TEXT,
    status TEXT,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS audit_entries (
    id TEXT PRIMARY KEY,
    entity_type TEXT,
    entity_id TEXT,
    action TEXT,
    performed_by_id TEXT REFERENCES users(id),
    performed_at TEXT,
    changed_fields TEXT
);
"""

TABLES = (
    "users", "customers", "loads", "check_calls", "risk_logs", "carrier_profiles",
    "carrier_scorecards", "carrier_bonuses", "invoices", "carrier_payments",
    "compliance_alerts", "audit_entries",
)

_LOAD_SELECT = """
    SELECT l.*,
           u.first_name AS carrier_first_name,
           u.last_name AS carrier_last_name,
           u.company AS carrier_company,
           c.name AS customer_name
    FROM loads l
    LEFT JOIN users u ON u.id = l.carrier_id
    LEFT JOIN customers c ON c.id = l.customer_id
"""


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


class DomainRepository:
    """Read queries over the freight domain tables.

    Every method opens its own connection; there are no multi-step
    transactions.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the domain tables if they don't exist."""
        conn = get_connection(self.db_path)
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def insert(self, table: str, row: Dict[str, Any]) -> None:
        """Insert a row into a domain table (used for seeding and tests)."""
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        columns = list(row)
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({_placeholders(columns)})",
                [row[c] for c in columns],
            )
            conn.commit()
        finally:
            conn.close()

    def _all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        conn = get_connection(self.db_path)
        try:
            return [dict(row) for row in conn.execute(sql, list(params)).fetchall()]
        finally:
            conn.close()

    def _one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = self._all(sql, params)
        return rows[0] if rows else None

    def _scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        conn = get_connection(self.db_path)
        try:
            row: sqlite3.Row = conn.execute(sql, list(params)).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    # Loads

    def find_load(self, scope: LoadScope, identifier: str) -> Optional[Dict[str, Any]]:
        """Resolve a load by id, then reference number, then load number."""
        where, params = scope.clause()
        return self._one(
            _LOAD_SELECT
            + f" WHERE {where} AND (l.id = ? OR l.reference_number = ? OR l.load_number = ?)"
            " ORDER BY CASE WHEN l.id = ? THEN 0 WHEN l.reference_number = ? THEN 1 ELSE 2 END"
            " LIMIT 1",
            params + [identifier] * 5,
        )

    def query_loads(
        self,
        scope: LoadScope,
        statuses: Optional[Sequence[str]] = None,
        exclude_statuses: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        date_column: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        order_by: str = "l.updated_at DESC",
        limit: Optional[int] = None,
        customer_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Query loads within a scope with optional filters."""
        where, params = scope.clause()
        conditions = [where]
        if statuses:
            conditions.append(f"l.status IN ({_placeholders(statuses)})")
            params += list(statuses)
        if exclude_statuses:
            conditions.append(f"l.status NOT IN ({_placeholders(exclude_statuses)})")
            params += list(exclude_statuses)
        if customer_id:
            conditions.append("l.customer_id = ?")
            params.append(customer_id)
        if date_column:
            if date_column not in ("pickup_date", "delivery_date", "created_at"):
                raise ValueError(f"Unsupported date column: {date_column}")
            conditions.append(f"l.{date_column} >= ? AND l.{date_column} <= ?")
            params += [start, end]
        if search:
            fields = (
                "l.reference_number", "l.load_number", "l.origin_city", "l.origin_state",
                "l.dest_city", "l.dest_state", "l.commodity", "u.company", "u.first_name",
                "u.last_name", "c.name",
            )
            conditions.append("(" + " OR ".join(f"{f} LIKE ?" for f in fields) + ")")
            params += [f"%{search}%"] * len(fields)

        sql = _LOAD_SELECT + " WHERE " + " AND ".join(conditions) + f" ORDER BY {order_by}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._all(sql, params)

    def load_ids(self, scope: LoadScope, limit: int = 50) -> List[str]:
        where, params = scope.clause()
        rows = self._all(
            f"SELECT l.id FROM loads l WHERE {where} ORDER BY l.updated_at DESC LIMIT ?",
            params + [limit],
        )
        return [row["id"] for row in rows]

    def check_calls(self, load_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT * FROM check_calls WHERE load_id = ? ORDER BY created_at DESC LIMIT ?",
            (load_id, limit),
        )

    def latest_risk_level(self, load_id: str) -> Optional[str]:
        return self._scalar(
            "SELECT level FROM risk_logs WHERE load_id = ? ORDER BY created_at DESC LIMIT 1",
            (load_id,),
        )

    def invoices_for_load(self, load_id: str) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT id, invoice_number, status, amount, total_amount, due_date, paid_at "
            "FROM invoices WHERE load_id = ? ORDER BY created_at DESC",
            (load_id,),
        )

    def payments_for_load(self, load_id: str) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT id, amount, net_amount, status, paid_at, payment_tier "
            "FROM carrier_payments WHERE load_id = ? ORDER BY created_at DESC",
            (load_id,),
        )

    def count_carrier_loads(self, carrier_user_id: str, since: Optional[str] = None) -> int:
        sql = "SELECT COUNT(*) FROM loads WHERE carrier_id = ? AND status NOT IN ('DRAFT', 'CANCELLED')"
        params: List[Any] = [carrier_user_id]
        if since:
            sql += " AND created_at >= ?"
            params.append(since)
        return int(self._scalar(sql, params) or 0)

    # Carriers

    def find_carrier_profile(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Resolve a carrier by profile id, user id, MC number, then DOT number."""
        return self._one(
            "SELECT p.*, u.first_name, u.last_name, u.email, u.company, u.phone, u.is_active "
            "FROM carrier_profiles p JOIN users u ON u.id = p.user_id "
            "WHERE p.id = ? OR p.user_id = ? OR p.mc_number = ? OR p.dot_number = ? "
            "ORDER BY CASE WHEN p.id = ? THEN 0 WHEN p.user_id = ? THEN 1 "
            "WHEN p.mc_number = ? THEN 2 ELSE 3 END LIMIT 1",
            [identifier] * 7,
        )

    def search_carrier_profiles(self, query: str, limit: int = 15) -> List[Dict[str, Any]]:
        fields = (
            "p.company_name", "p.mc_number", "p.dot_number", "p.contact_name",
            "u.company", "u.first_name", "u.last_name",
        )
        return self._all(
            "SELECT p.*, u.first_name, u.last_name, u.company, u.is_active "
            "FROM carrier_profiles p JOIN users u ON u.id = p.user_id WHERE "
            + " OR ".join(f"{f} LIKE ?" for f in fields)
            + " LIMIT ?",
            [f"%{query}%"] * len(fields) + [limit],
        )

    def scorecards(self, profile_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT * FROM carrier_scorecards WHERE carrier_profile_id = ? "
            "ORDER BY calculated_at DESC LIMIT ?",
            (profile_id, limit),
        )

    def bonuses(self, profile_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT * FROM carrier_bonuses WHERE carrier_profile_id = ? "
            "ORDER BY created_at DESC LIMIT ?",
            (profile_id, limit),
        )

    def compliance_alerts(self, entity_id: Optional[str] = None, limit: int = 25) -> List[Dict[str, Any]]:
        """Active alerts, optionally for one carrier profile."""
        sql = "SELECT * FROM compliance_alerts WHERE status = 'ACTIVE'"
        params: List[Any] = []
        if entity_id is not None:
            sql += " AND entity_type = 'CARRIER' AND entity_id = ?"
            params.append(entity_id)
        sql += " ORDER BY severity ASC, expiry_date ASC LIMIT ?"
        params.append(limit)
        return self._all(sql, params)

    # Customers

    def find_customer(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Resolve a customer by id, then by name substring."""
        return self._one(
            "SELECT * FROM customers WHERE id = ? OR name LIKE ? "
            "ORDER BY CASE WHEN id = ? THEN 0 ELSE 1 END, name ASC LIMIT 1",
            (identifier, f"%{identifier}%", identifier),
        )

    def customers_for_poster(self, poster_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT * FROM customers WHERE id IN "
            "(SELECT DISTINCT customer_id FROM loads WHERE poster_id = ? AND customer_id IS NOT NULL) "
            "ORDER BY name ASC LIMIT ?",
            (poster_id, limit),
        )

    def list_customers(self, limit: int = 20) -> List[Dict[str, Any]]:
        return self._all("SELECT * FROM customers ORDER BY updated_at DESC LIMIT ?", (limit,))

    def customer_load_count(self, customer_id: str) -> int:
        return int(self._scalar("SELECT COUNT(*) FROM loads WHERE customer_id = ?", (customer_id,)) or 0)

    def poster_has_customer(self, poster_id: str, customer_id: str) -> bool:
        return self._scalar(
            "SELECT 1 FROM loads WHERE poster_id = ? AND customer_id = ? LIMIT 1",
            (poster_id, customer_id),
        ) is not None

    def invoices_for_customer(self, customer_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT i.id, i.invoice_number, i.status, i.amount, i.total_amount, i.due_date, "
            "i.paid_at, i.created_at FROM invoices i JOIN loads l ON l.id = i.load_id "
            "WHERE l.customer_id = ? ORDER BY i.created_at DESC LIMIT ?",
            (customer_id, limit),
        )

    # Money

    def invoices_with_status(self, statuses: Sequence[str]) -> List[Dict[str, Any]]:
        return self._all(
            f"SELECT * FROM invoices WHERE status IN ({_placeholders(statuses)})",
            list(statuses),
        )

    def carrier_payments(
        self,
        carrier_id: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Carrier payments newest first, with load and carrier names."""
        sql = (
            "SELECT p.*, l.reference_number AS load_reference, l.origin_city, l.origin_state, "
            "l.dest_city, l.dest_state, u.company AS carrier_company, "
            "u.first_name AS carrier_first_name, u.last_name AS carrier_last_name "
            "FROM carrier_payments p LEFT JOIN loads l ON l.id = p.load_id "
            "LEFT JOIN users u ON u.id = p.carrier_id"
        )
        conditions: List[str] = []
        params: List[Any] = []
        if carrier_id is not None:
            conditions.append("p.carrier_id = ?")
            params.append(carrier_id)
        if statuses:
            conditions.append(f"p.status IN ({_placeholders(statuses)})")
            params += list(statuses)
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY p.created_at DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._all(sql, params)

    # Audit

    def audit_entries(
        self,
        load_ids: Optional[Sequence[str]] = None,
        performer_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Recent audit entries; with no filters, all entries."""
        conditions: List[str] = []
        params: List[Any] = []
        if load_ids:
            conditions.append(f"(a.entity_type = 'Load' AND a.entity_id IN ({_placeholders(load_ids)}))")
            params += list(load_ids)
        if performer_id is not None:
            conditions.append("a.performed_by_id = ?")
            params.append(performer_id)
        sql = (
            "SELECT a.*, u.first_name, u.last_name FROM audit_entries a "
            "LEFT JOIN users u ON u.id = a.performed_by_id"
        )
        if conditions:
            sql += " WHERE " + " OR ".join(conditions)
        sql += " ORDER BY a.performed_at DESC LIMIT ?"
        params.append(limit)
        return self._all(sql, params)
