"""
UI action suggestions derived from tool results.

``suggest_actions`` is a pure function of (tool name, arguments, result); it
never looks at conversation state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .definitions import ToolName


class ActionType(Enum):
    """What the UI does when an action button is pressed."""
    NAVIGATE = "navigate"
    REFRESH = "refresh"
    EXPORT = "export"
    API = "api"


@dataclass(frozen=True)
class ActionButton:
    """A button the chat UI may render under an assistant message."""
    label: str
    type: ActionType
    target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "type": self.type.value, "target": self.target}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionButton":
        return cls(label=data["label"], type=ActionType(data["type"]), target=data.get("target"))


def _navigate(label: str, target: str) -> ActionButton:
    return ActionButton(label, ActionType.NAVIGATE, target)


def _load_info(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    load = result.get("load")
    if load:
        return [_navigate("View load", f"/loads/{load['id']}")]
    return [_navigate("Open load board", "/loads")]


def _loads_by_status(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    status = result.get("status") or args.get("status")
    return [_navigate(f"View {status} loads", f"/loads?status={status}")]


def _carrier_info(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    carrier = result.get("carrier") or {}
    return [_navigate("View carrier", f"/carriers/{carrier.get('profile_id')}")]


def _shipper_info(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    shipper = result.get("shipper")
    if shipper:
        return [_navigate("View shipper", f"/customers/{shipper['id']}")]
    return [_navigate("Open customers", "/customers")]


def _analytics(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    metric = result.get("metric") or args.get("metric")
    return [
        _navigate("Open analytics", f"/analytics?metric={metric}"),
        ActionButton("Export report", ActionType.EXPORT, f"/api/analytics/export?metric={metric}"),
    ]


def _compliance(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    return [_navigate("Open compliance", "/compliance")]


def _financials(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    return [
        _navigate("Open accounting", "/accounting"),
        ActionButton("Export summary", ActionType.EXPORT, "/api/accounting/export"),
    ]


def _search_loads(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    results = result.get("results") or []
    if len(results) == 1:
        return [_navigate("View load", f"/loads/{results[0]['id']}")]
    return [_navigate("Open load board", f"/loads?search={result.get('query', '')}")]


def _search_carriers(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    return [_navigate("Open carriers", f"/carriers?search={result.get('query', '')}")]


def _recent_activity(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    return [ActionButton("Refresh activity", ActionType.REFRESH)]


def _my_loads(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    return [_navigate("My loads", "/loads/mine")]


def _my_payments(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    return [_navigate("View payments", "/payments")]


def _my_score(args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    carrier = result.get("carrier")
    if carrier:
        return [_navigate("View scorecard", f"/carriers/{carrier['profile_id']}/scorecard")]
    return [_navigate("View scorecard", "/scorecard")]


_ACTION_BUILDERS: Dict[ToolName, Callable[[Dict[str, Any], Dict[str, Any]], List[ActionButton]]] = {
    ToolName.GET_LOAD_INFO: _load_info,
    ToolName.GET_LOADS_BY_STATUS: _loads_by_status,
    ToolName.GET_CARRIER_INFO: _carrier_info,
    ToolName.GET_SHIPPER_INFO: _shipper_info,
    ToolName.GET_ANALYTICS_SUMMARY: _analytics,
    ToolName.GET_COMPLIANCE_STATUS: _compliance,
    ToolName.GET_FINANCIAL_SUMMARY: _financials,
    ToolName.SEARCH_LOADS: _search_loads,
    ToolName.SEARCH_CARRIERS: _search_carriers,
    ToolName.GET_RECENT_ACTIVITY: _recent_activity,
    ToolName.GET_MY_LOADS: _my_loads,
    ToolName.GET_MY_PAYMENTS: _my_payments,
    ToolName.GET_MY_SCORE: _my_score,
}

if set(_ACTION_BUILDERS) != set(ToolName):
    raise RuntimeError("every ToolName needs an action builder")


def suggest_actions(tool_name: str, args: Dict[str, Any], result: Dict[str, Any]) -> List[ActionButton]:
    """Map a tool result to UI action buttons.

    Error results and unknown tools produce no actions.
    """
    if not isinstance(result, dict) or "error" in result:
        return []
    try:
        tool = ToolName(tool_name)
    except ValueError:
        return []
    return _ACTION_BUILDERS[tool](args or {}, result)
