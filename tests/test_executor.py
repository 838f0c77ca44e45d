"""
Unit tests for the tool catalog and executor.
"""

from unittest.mock import Mock

from freight_ai.tools.definitions import TOOL_DEFINITIONS, ToolName, openai_tool_schema
from freight_ai.tools.executor import ToolExecutor
from freight_ai.tools.roles import BrokerCaller, CarrierCaller

BROKER = BrokerCaller(user_id="u-broker")


class TestToolCatalog:
    """Definitions and the exported function schema."""

    def test_thirteen_tools(self):
        assert len(TOOL_DEFINITIONS) == 13
        assert {t.name for t in TOOL_DEFINITIONS} == set(ToolName)

    def test_schema_shape(self):
        schema = {tool["function"]["name"]: tool for tool in openai_tool_schema()}

        assert set(schema) == {name.value for name in ToolName}
        search = schema["searchLoads"]
        assert search["type"] == "function"
        assert search["function"]["parameters"]["required"] == ["query"]
        assert search["function"]["parameters"]["properties"]["query"]["type"] == "string"

    def test_parameterless_tool_has_empty_object_schema(self):
        schema = {tool["function"]["name"]: tool for tool in openai_tool_schema()}
        assert schema["getMyLoads"]["function"]["parameters"] == {"type": "object", "properties": {}}

    def test_required_parameters(self):
        required = {t.name: t.required for t in TOOL_DEFINITIONS if t.required}
        assert required == {
            ToolName.GET_LOADS_BY_STATUS: ["status"],
            ToolName.GET_ANALYTICS_SUMMARY: ["metric"],
            ToolName.SEARCH_LOADS: ["query"],
            ToolName.SEARCH_CARRIERS: ["query"],
        }


class TestToolExecutor:
    """Dispatch by name."""

    def setup_method(self):
        self.access = Mock()
        self.executor = ToolExecutor(self.access)

    def test_dispatches_with_arguments(self):
        self.access.get_analytics_summary.return_value = {"metric": "revenue"}

        result = self.executor.execute(
            "getAnalyticsSummary", {"metric": "revenue", "date_range": "this_week"}, BROKER,
        )

        assert result == {"metric": "revenue"}
        self.access.get_analytics_summary.assert_called_once_with(BROKER, "revenue", "this_week")

    def test_missing_optional_argument_is_none(self):
        self.executor.execute("getLoadInfo", {}, BROKER)
        self.access.get_load_info.assert_called_once_with(BROKER, None)

    def test_non_dict_arguments_treated_as_empty(self):
        carrier = CarrierCaller(user_id="u-c")
        self.executor.execute("getMyScore", "garbage", carrier)
        self.access.get_my_score.assert_called_once_with(carrier, None)

    def test_unknown_tool(self):
        result = self.executor.execute("deleteLoad", {"load_id": "x"}, BROKER)

        assert result["error"].startswith("Unknown tool: deleteLoad. Available tools: getLoadInfo, ")
        assert "getMyScore" in result["error"]

    def test_every_tool_dispatches(self):
        for name in ToolName:
            self.executor.execute(name.value, {}, BROKER)
        called = {c[0] for c in self.access.method_calls}
        assert len(called) == len(ToolName)
