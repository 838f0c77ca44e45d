"""
Tool catalog exposed to the model.

``TOOL_DEFINITIONS`` is the only place tool names, descriptions and
parameter schemas are declared; the executor and the function-calling
schema are both derived from it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class ToolName(Enum):
    GET_LOAD_INFO = "getLoadInfo"
    GET_LOADS_BY_STATUS = "getLoadsByStatus"
    GET_CARRIER_INFO = "getCarrierInfo"
    GET_SHIPPER_INFO = "getShipperInfo"
    GET_ANALYTICS_SUMMARY = "getAnalyticsSummary"
    GET_COMPLIANCE_STATUS = "getComplianceStatus"
    GET_FINANCIAL_SUMMARY = "getFinancialSummary"
    SEARCH_LOADS = "searchLoads"
    SEARCH_CARRIERS = "searchCarriers"
    GET_RECENT_ACTIVITY = "getRecentActivity"
    GET_MY_LOADS = "getMyLoads"
    GET_MY_PAYMENTS = "getMyPayments"
    GET_MY_SCORE = "getMyScore"


@dataclass(frozen=True)
class ToolDefinition:
    name: ToolName
    description: str
    properties: Dict[str, Dict[str, str]] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)

    def parameters(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "object", "properties": dict(self.properties)}
        if self.required:
            schema["required"] = list(self.required)
        return schema


def _string(description: str) -> Dict[str, str]:
    return {"type": "string", "description": description}


TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        ToolName.GET_LOAD_INFO,
        "Look up one load by ID, reference number or load number, with route, status, carrier, "
        "customer, recent check calls, invoices and carrier payments. Without an ID, lists the "
        "10 most recently updated loads.",
        {"load_id": _string("Load ID, reference number or load number. Omit to list recent loads.")},
    ),
    ToolDefinition(
        ToolName.GET_LOADS_BY_STATUS,
        "List loads in a given status, for example all in-transit or all delivered loads.",
        {"status": _string(
            "Load status: DRAFT, PLANNED, POSTED, TENDERED, CONFIRMED, BOOKED, DISPATCHED, AT_PICKUP, "
            "LOADED, IN_TRANSIT, AT_DELIVERY, DELIVERED, POD_RECEIVED, INVOICED, COMPLETED, TONU, CANCELLED"
        )},
        ["status"],
    ),
    ToolDefinition(
        ToolName.GET_CARRIER_INFO,
        "Carrier profile with tier, program score, compliance alerts, equipment and load counts. "
        "Accepts a carrier profile ID, user ID, MC number or DOT number.",
        {"carrier_id": _string(
            "Carrier profile ID, user ID, MC number or DOT number. Carrier users may omit it to see their own profile."
        )},
    ),
    ToolDefinition(
        ToolName.GET_SHIPPER_INFO,
        "Shipper/customer details with credit, recent loads and invoice history. Not available to carriers.",
        {"shipper_id": _string("Customer ID or company name. Omit to list the shippers you work with.")},
    ),
    ToolDefinition(
        ToolName.GET_ANALYTICS_SUMMARY,
        "Analytics for revenue, load counts, on-time delivery, at-risk loads or top lanes. "
        "Carrier users can only request 'loads' and 'on_time'.",
        {
            "metric": _string(
                "One of 'revenue', 'loads', 'on_time', 'risk_loads', 'top_lanes' (top 5 lanes by volume)"
            ),
            "date_range": _string("One of 'today', 'this_week', 'this_month', 'last_30d' (default)"),
        },
        ["metric"],
    ),
    ToolDefinition(
        ToolName.GET_COMPLIANCE_STATUS,
        "Active compliance alerts such as insurance expirations and authority issues. "
        "Carrier users only see their own alerts.",
        {"carrier_id": _string("Carrier profile ID or user ID to filter by. Omit to see all active alerts.")},
    ),
    ToolDefinition(
        ToolName.GET_FINANCIAL_SUMMARY,
        "Financial overview: receivables, payables and 30-day revenue and margin. Brokers get a "
        "limited revenue and margin view; accounting, operations and admins get the full view. "
        "Not available to carriers.",
    ),
    ToolDefinition(
        ToolName.SEARCH_LOADS,
        "Search loads by reference number, origin or destination, carrier, shipper or commodity.",
        {"query": _string("Reference number, city, state, carrier name, shipper name or commodity")},
        ["query"],
    ),
    ToolDefinition(
        ToolName.SEARCH_CARRIERS,
        "Search carriers by company name, MC number or DOT number. Not available to carriers.",
        {"query": _string("Company name, MC number or DOT number")},
        ["query"],
    ),
    ToolDefinition(
        ToolName.GET_RECENT_ACTIVITY,
        "The last 10 audit trail events relevant to the user.",
    ),
    ToolDefinition(
        ToolName.GET_MY_LOADS,
        "The user's open loads (soonest pickup first) and recently completed loads.",
    ),
    ToolDefinition(
        ToolName.GET_MY_PAYMENTS,
        "Carrier payment history and totals. Carriers see their own payments; accounting, "
        "operations and admins see all recent payments. Not available to brokers.",
    ),
    ToolDefinition(
        ToolName.GET_MY_SCORE,
        "Carrier program score, tier, bonus percentage and next-tier requirement. Carriers get "
        "their own score; brokers, operations and admins pass a carrier_id.",
        {"carrier_id": _string("Carrier profile ID or user ID. Ignored for carrier users.")},
    ),
]


def openai_tool_schema() -> List[Dict[str, Any]]:
    """Tool definitions in the OpenAI function-calling format."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name.value,
                "description": tool.description,
                "parameters": tool.parameters(),
            },
        }
        for tool in TOOL_DEFINITIONS
    ]
