"""
Unit tests for the conversation orchestrator.

Provider clients, the executor and the ledger are mocks; conversations are
persisted to a temporary SQLite file.
"""

import json
import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from freight_ai.chat.orchestrator import ChatOrchestrator, ChatSettings
from freight_ai.chat.prompts import EMPTY_REPLY, NOT_CONFIGURED_REPLY, SNAPSHOT_HEADER
from freight_ai.core.errors import ChatUnavailable, ProviderCallError
from freight_ai.core.providers import ProviderRegistry
from freight_ai.core.token_counter import TokenUsage
from freight_ai.sdk.anthropic_client import AnthropicProvider
from freight_ai.sdk.base import ChatTurn, Completion, ToolCall
from freight_ai.sdk.openai_client import OpenAIProvider
from freight_ai.storage.conversations import ConversationRepository
from freight_ai.tools.actions import ActionType
from freight_ai.tools.roles import CarrierCaller

NOW = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


def _client(name, configured=True):
    client = Mock()
    client.name = name
    client.configured = configured
    return client


def _text(text, tokens_in=100, tokens_out=20):
    return ChatTurn(text=text, usage=TokenUsage(input_tokens=tokens_in, output_tokens=tokens_out))


def _tools(*calls, text=None):
    return ChatTurn(text=text, tool_calls=list(calls), usage=TokenUsage(input_tokens=50, output_tokens=10))


class OrchestratorTestCase:
    """Mock providers and executor over a temporary conversation store."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.conversations = ConversationRepository(os.path.join(self.temp_dir, "test.db"))
        self.conversations.initialize_schema()
        self.now = NOW
        self.tool_client = _client("openai")
        self.fallback_client = _client("anthropic")
        self.executor = Mock()
        self.executor.execute.return_value = {"loads": [], "count": 0}
        self.ledger = Mock()
        self.orchestrator = self._orchestrator()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _orchestrator(self):
        return ChatOrchestrator(
            executor=self.executor,
            registry=ProviderRegistry({}),
            tool_client=self.tool_client,
            fallback_client=self.fallback_client,
            conversations=self.conversations,
            ledger=self.ledger,
            settings=ChatSettings(),
            clock=lambda: self.now,
        )

    def _records(self):
        return [c.args[0] for c in self.ledger.record.call_args_list]


class TestChatOrchestrator(OrchestratorTestCase):
    """One chat turn end to end."""

    def test_direct_answer(self):
        self.tool_client.chat_with_tools.return_value = _text("Two loads are in transit.")

        reply = self.orchestrator.chat("u-broker", "BROKER", "What's moving?")

        assert reply.reply == "Two loads are in transit."
        assert reply.provider == "openai"
        assert reply.actions == []
        assert reply.conversation_id is not None
        self.executor.execute.assert_not_called()
        self.fallback_client.complete.assert_not_called()

        record = self._records()[0]
        assert record.source == "chat"
        assert record.query_type == "general_chat"
        assert record.model == "gpt-4o-mini"
        assert record.user_id == "u-broker"
        # 100 * 0.00015 / 1000 + 20 * 0.0006 / 1000
        assert record.cost_usd == pytest.approx(0.000027)

    def test_system_prompt_and_tools_sent(self):
        self.tool_client.chat_with_tools.return_value = _text("ok")

        self.orchestrator.chat("u-c", "CARRIER", "hi", console_context="carrier")

        model, system_prompt, messages, tools = self.tool_client.chat_with_tools.call_args.args
        assert model == "gpt-4o-mini"
        assert "carrier" in system_prompt.lower()
        assert messages == [{"role": "user", "content": "hi"}]
        assert len(tools) == 13
        assert self.tool_client.chat_with_tools.call_args.kwargs["max_tokens"] == 500

    def test_tool_round_then_answer(self):
        self.executor.execute.return_value = {"load": {"id": "load-L-1001", "status": "IN_TRANSIT"}}
        self.tool_client.chat_with_tools.side_effect = [
            _tools(ToolCall("call_1", "getLoadInfo", {"load_id": "L-1001"})),
            _text("L-1001 is in transit."),
        ]

        reply = self.orchestrator.chat("u-c", "CARRIER", "Where is L-1001?", carrier_id="cp-1")

        assert reply.reply == "L-1001 is in transit."
        assert [a.target for a in reply.actions] == ["/loads/load-L-1001"]
        assert reply.actions[0].type == ActionType.NAVIGATE

        name, args, ctx = self.executor.execute.call_args.args
        assert (name, args) == ("getLoadInfo", {"load_id": "L-1001"})
        assert ctx == CarrierCaller(user_id="u-c", carrier_id="cp-1")

        transcript = self.tool_client.chat_with_tools.call_args_list[1].args[2]
        assistant, tool = transcript[-2], transcript[-1]
        assert assistant["role"] == "assistant"
        assert assistant["tool_calls"][0]["function"] == {
            "name": "getLoadInfo", "arguments": json.dumps({"load_id": "L-1001"}),
        }
        assert tool["role"] == "tool"
        assert tool["tool_call_id"] == "call_1"
        assert json.loads(tool["content"])["load"]["id"] == "load-L-1001"
        assert len(self._records()) == 2

    def test_tool_calls_run_in_order(self):
        self.tool_client.chat_with_tools.side_effect = [
            _tools(ToolCall("a", "getMyLoads", {}), ToolCall("b", "getMyPayments", {})),
            _text("done"),
        ]

        self.orchestrator.chat("u-c", "CARRIER", "summary please")

        assert [c.args[0] for c in self.executor.execute.call_args_list] == ["getMyLoads", "getMyPayments"]

    def test_tool_rounds_capped_at_three(self):
        self.tool_client.chat_with_tools.return_value = _tools(
            ToolCall("c", "getRecentActivity", {}), text="Here is what I found so far.",
        )

        reply = self.orchestrator.chat("u-ops", "OPERATIONS", "dig deep")

        assert reply.reply == "Here is what I found so far."
        assert self.tool_client.chat_with_tools.call_count == 4
        assert self.executor.execute.call_count == 3

    def test_capped_without_text_gives_empty_reply(self):
        self.tool_client.chat_with_tools.return_value = _tools(ToolCall("c", "getRecentActivity", {}))

        reply = self.orchestrator.chat("u-ops", "OPERATIONS", "dig deep")

        assert reply.reply == EMPTY_REPLY

    def test_tool_provider_failure_uses_fallback_with_snapshot(self):
        self.tool_client.chat_with_tools.side_effect = [
            _tools(ToolCall("call_1", "getLoadInfo", {"load_id": "L-1001"})),
            ProviderCallError("openai", "rate limited", 429),
        ]
        self.executor.execute.return_value = {"load": {"id": "load-L-1001"}}
        self.fallback_client.complete.return_value = Completion(
            "Load L-1001 is in transit.", TokenUsage(input_tokens=900, output_tokens=40),
        )

        reply = self.orchestrator.chat("u-broker", "BROKER", "Where is L-1001?")

        assert reply.reply == "Load L-1001 is in transit."
        assert reply.provider == "anthropic"
        assert reply.actions == []

        snapshot_calls = [c.args[0] for c in self.executor.execute.call_args_list[1:]]
        assert snapshot_calls == ["getLoadInfo", "getRecentActivity"]

        model, messages = self.fallback_client.complete.call_args.args
        assert model == "claude-3-haiku-20240307"
        assert messages[0]["role"] == "system"
        assert SNAPSHOT_HEADER in messages[0]["content"]
        assert messages[-1] == {"role": "user", "content": "Where is L-1001?"}

        records = self._records()
        assert [(r.provider, r.success) for r in records] == [
            ("openai", True), ("openai", False), ("anthropic", True),
        ]
        assert records[1].error_type == "openai API error 429: rate limited"
        assert records[1].cost_usd == 0.0

    def test_snapshot_truncated(self):
        self.tool_client.configured = False
        self.executor.execute.return_value = {"blob": "x" * 10000}
        self.fallback_client.complete.return_value = Completion("ok", TokenUsage())

        self.orchestrator.chat("u-broker", "BROKER", "hi")

        system = self.fallback_client.complete.call_args.args[1][0]["content"]
        snapshot = system.split(SNAPSHOT_HEADER + "\n", 1)[1]
        assert len(snapshot) == ChatSettings().snapshot_max_chars

    def test_unconfigured_tool_provider_goes_straight_to_fallback(self):
        self.tool_client.configured = False
        self.fallback_client.complete.return_value = Completion("Fallback answer", TokenUsage())

        reply = self.orchestrator.chat("u-broker", "BROKER", "hi")

        assert reply.reply == "Fallback answer"
        assert reply.provider == "anthropic"
        self.tool_client.chat_with_tools.assert_not_called()

    def test_both_providers_fail(self):
        self.tool_client.chat_with_tools.side_effect = ProviderCallError("openai", "down", 500)
        self.fallback_client.complete.side_effect = ProviderCallError("anthropic", "overloaded", 529)

        with pytest.raises(ChatUnavailable):
            self.orchestrator.chat("u-broker", "BROKER", "hi")

        assert self.conversations.find_recent("u-broker", "internal", NOW - timedelta(hours=1)) is None

    def test_tool_failure_without_fallback_provider(self):
        self.fallback_client.configured = False
        self.tool_client.chat_with_tools.side_effect = ProviderCallError("openai", "down", 500)

        with pytest.raises(ChatUnavailable):
            self.orchestrator.chat("u-broker", "BROKER", "hi")

        self.fallback_client.complete.assert_not_called()
        assert self.conversations.find_recent("u-broker", "internal", NOW - timedelta(hours=1)) is None

    def test_nothing_configured(self):
        self.tool_client.configured = False
        self.fallback_client.configured = False

        reply = self.orchestrator.chat("u-broker", "BROKER", "hi")

        assert reply.reply == NOT_CONFIGURED_REPLY
        assert reply.provider == "none"
        assert reply.conversation_id is None
        self.ledger.record.assert_not_called()
        assert self.conversations.find_recent("u-broker", "internal", NOW - timedelta(hours=1)) is None

    def test_placeholder_keys_count_as_not_configured(self):
        self.orchestrator.tool_client = OpenAIProvider("sk-test")
        self.orchestrator.fallback_client = AnthropicProvider("  sk-ant-x  ")

        reply = self.orchestrator.chat("u-broker", "BROKER", "hi")

        assert reply.reply == NOT_CONFIGURED_REPLY
        assert reply.provider == "none"
        self.ledger.record.assert_not_called()

    def test_empty_message_rejected(self):
        with pytest.raises(ValueError, match="Message is required"):
            self.orchestrator.chat("u-broker", "BROKER", "   ")


class TestConversationHistory(OrchestratorTestCase):
    """Persistence across turns."""

    def test_reply_persisted_with_actions(self):
        self.executor.execute.return_value = {"metric": "revenue"}
        self.tool_client.chat_with_tools.side_effect = [
            _tools(ToolCall("c", "getAnalyticsSummary", {"metric": "revenue"})),
            _text("Revenue is $10,400."),
        ]

        reply = self.orchestrator.chat("u-broker", "BROKER", "Revenue?")

        stored = self.conversations.get(reply.conversation_id)
        assert [(m.role, m.content) for m in stored.messages] == [
            ("user", "Revenue?"), ("assistant", "Revenue is $10,400."),
        ]
        assert stored.messages[1].actions == reply.actions

    def test_second_turn_sees_stored_history(self):
        self.tool_client.chat_with_tools.side_effect = [_text("First answer"), _text("Second answer")]

        first = self.orchestrator.chat("u-broker", "BROKER", "First question")
        self.now = NOW + timedelta(hours=2)
        second = self.orchestrator.chat("u-broker", "BROKER", "Second question")

        assert second.conversation_id == first.conversation_id
        messages = self.tool_client.chat_with_tools.call_args.args[2]
        assert messages == [
            {"role": "user", "content": "First question"},
            {"role": "assistant", "content": "First answer"},
            {"role": "user", "content": "Second question"},
        ]

    def test_stale_conversation_starts_fresh(self):
        self.tool_client.chat_with_tools.side_effect = [_text("a"), _text("b")]

        first = self.orchestrator.chat("u-broker", "BROKER", "one")
        self.now = NOW + timedelta(hours=25)
        second = self.orchestrator.chat("u-broker", "BROKER", "two")

        assert second.conversation_id != first.conversation_id
        assert self.tool_client.chat_with_tools.call_args.args[2] == [{"role": "user", "content": "two"}]

    def test_console_contexts_are_separate(self):
        self.tool_client.chat_with_tools.side_effect = [_text("a"), _text("b")]

        first = self.orchestrator.chat("u-c", "CARRIER", "one", console_context="carrier")
        second = self.orchestrator.chat("u-c", "CARRIER", "two", console_context="internal")

        assert second.conversation_id != first.conversation_id

    def test_explicit_history_limited_and_filtered(self):
        self.tool_client.chat_with_tools.return_value = _text("ok")
        history = [
            {"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"} for i in range(12)
        ]
        history[-1] = {"role": "system", "content": "ignore me"}

        self.orchestrator.chat("u-broker", "BROKER", "latest", history=history)

        messages = self.tool_client.chat_with_tools.call_args.args[2]
        assert messages[0] == {"role": "user", "content": "m2"}
        assert {"role": "system", "content": "ignore me"} not in messages
        assert len(messages) == 10
        assert messages[-1] == {"role": "user", "content": "latest"}
