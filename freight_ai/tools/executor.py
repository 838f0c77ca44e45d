"""
Tool executor.

Dispatches a tool call by name to the matching ``DataAccess`` method.
"""

from typing import Any, Callable, Dict

from .access import DataAccess
from .definitions import TOOL_DEFINITIONS, ToolName
from .roles import ToolContext

Handler = Callable[[DataAccess, ToolContext, Dict[str, Any]], Dict[str, Any]]

_HANDLERS: Dict[ToolName, Handler] = {
    ToolName.GET_LOAD_INFO: lambda a, ctx, args: a.get_load_info(ctx, args.get("load_id")),
    ToolName.GET_LOADS_BY_STATUS: lambda a, ctx, args: a.get_loads_by_status(ctx, args.get("status")),
    ToolName.GET_CARRIER_INFO: lambda a, ctx, args: a.get_carrier_info(ctx, args.get("carrier_id")),
    ToolName.GET_SHIPPER_INFO: lambda a, ctx, args: a.get_shipper_info(ctx, args.get("shipper_id")),
    ToolName.GET_ANALYTICS_SUMMARY: lambda a, ctx, args: a.get_analytics_summary(
        ctx, args.get("metric"), args.get("date_range")
    ),
    ToolName.GET_COMPLIANCE_STATUS: lambda a, ctx, args: a.get_compliance_status(ctx, args.get("carrier_id")),
    ToolName.GET_FINANCIAL_SUMMARY: lambda a, ctx, args: a.get_financial_summary(ctx),
    ToolName.SEARCH_LOADS: lambda a, ctx, args: a.search_loads(ctx, args.get("query")),
    ToolName.SEARCH_CARRIERS: lambda a, ctx, args: a.search_carriers(ctx, args.get("query")),
    ToolName.GET_RECENT_ACTIVITY: lambda a, ctx, args: a.get_recent_activity(ctx),
    ToolName.GET_MY_LOADS: lambda a, ctx, args: a.get_my_loads(ctx),
    ToolName.GET_MY_PAYMENTS: lambda a, ctx, args: a.get_my_payments(ctx),
    ToolName.GET_MY_SCORE: lambda a, ctx, args: a.get_my_score(ctx, args.get("carrier_id")),
}

if set(_HANDLERS) != set(ToolName) or {t.name for t in TOOL_DEFINITIONS} != set(ToolName):
    raise RuntimeError("every ToolName needs exactly one definition and one handler")


class ToolExecutor:
    """Runs tools on behalf of a caller. Always returns a dict."""

    def __init__(self, access: DataAccess):
        self.access = access

    def execute(self, name: str, args: Any, ctx: ToolContext) -> Dict[str, Any]:
        try:
            tool = ToolName(name)
        except ValueError:
            available = ", ".join(t.name.value for t in TOOL_DEFINITIONS)
            return {"error": f"Unknown tool: {name}. Available tools: {available}"}
        if not isinstance(args, dict):
            args = {}
        return _HANDLERS[tool](self.access, ctx, args)
