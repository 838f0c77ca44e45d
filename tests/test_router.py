"""
Unit tests for the query router.

Provider clients and the ledger are mocks; no network is touched.
"""

from unittest.mock import Mock

import pytest

from freight_ai.core.errors import AllProvidersFailed, NoModelsAvailable, ProviderCallError
from freight_ai.core.providers import DEFAULT_CATALOG, Provider, ProviderName, ProviderRegistry, QueryType
from freight_ai.core.router import ERROR_TYPE_MAX_LENGTH, QueryRouter, RouteRequest
from freight_ai.core.token_counter import TokenUsage
from freight_ai.sdk.base import Completion

KEYS = {
    ProviderName.OPENAI: "sk-test-openai-0123456789",
    ProviderName.ANTHROPIC: "sk-ant-test-0123456789",
}


def _ok(text="ok", tokens_in=1000, tokens_out=1000):
    return Completion(content=text, usage=TokenUsage(input_tokens=tokens_in, output_tokens=tokens_out))


def _request(query_type=QueryType.RATE_PREDICTION, preferred=None):
    return RouteRequest(
        query_type=query_type,
        messages=[{"role": "user", "content": "Rate for Chicago to Dallas dry van?"}],
        preferred_model=preferred,
        user_id="u-1",
    )


class TestBuildCascade:
    """Candidate ordering."""

    def setup_method(self):
        self.router = QueryRouter(ProviderRegistry(KEYS), {}, Mock())

    def test_tier_models_cheapest_first(self):
        cascade = self.router.build_cascade(QueryType.RATE_PREDICTION)
        assert [m.id for m in cascade.models] == ["gpt-4o-mini", "claude-3-haiku-20240307"]
        assert not cascade.degraded

    def test_preferred_model_heads_cascade(self):
        cascade = self.router.build_cascade(QueryType.RATE_PREDICTION, "claude-3-haiku-20240307")
        assert [m.id for m in cascade.models] == ["claude-3-haiku-20240307", "gpt-4o-mini"]

    def test_preferred_model_outside_tier(self):
        cascade = self.router.build_cascade(QueryType.RATE_PREDICTION, "gpt-4o")
        assert [m.id for m in cascade.models] == ["gpt-4o", "gpt-4o-mini", "claude-3-haiku-20240307"]

    def test_unknown_preferred_model_ignored(self):
        cascade = self.router.build_cascade(QueryType.RATE_PREDICTION, "gpt-9")
        assert [m.id for m in cascade.models] == ["gpt-4o-mini", "claude-3-haiku-20240307"]

    def test_preferred_model_without_capability_ignored(self):
        cascade = self.router.build_cascade(QueryType.DOCUMENT_ANALYSIS, "gpt-4o-mini")
        assert [m.id for m in cascade.models] == ["gpt-4-turbo", "claude-3-opus-20240229"]

    def test_degrades_to_all_models_when_tier_empty(self):
        catalog = (Provider(
            name=ProviderName.OPENAI,
            base_url="https://api.openai.com/v1",
            models=tuple(m for m in DEFAULT_CATALOG[0].models if m.id == "gpt-4o"),
        ),)
        router = QueryRouter(ProviderRegistry(KEYS, catalog), {}, Mock())

        cascade = router.build_cascade(QueryType.RATE_PREDICTION)

        assert [m.id for m in cascade.models] == ["gpt-4o"]
        assert cascade.degraded

    def test_no_credentials_gives_empty_cascade(self):
        router = QueryRouter(ProviderRegistry({}), {}, Mock())
        assert router.build_cascade(QueryType.GENERAL_CHAT).models == []


class TestRoute:
    """Cascade execution and ledger writes."""

    def setup_method(self):
        self.openai = Mock()
        self.anthropic = Mock()
        self.ledger = Mock()
        self.router = QueryRouter(
            ProviderRegistry(KEYS),
            {ProviderName.OPENAI: self.openai, ProviderName.ANTHROPIC: self.anthropic},
            self.ledger,
        )

    def _records(self):
        return [c.args[0] for c in self.ledger.record.call_args_list]

    def test_first_candidate_answers(self):
        self.openai.complete.return_value = _ok("$2.45/mile")

        response = self.router.route(_request())

        assert response.content == "$2.45/mile"
        assert response.model == "gpt-4o-mini"
        assert response.provider == "openai"
        assert response.cost_usd == pytest.approx(0.00075)
        assert not response.fallback
        self.anthropic.complete.assert_not_called()

        records = self._records()
        assert len(records) == 1
        assert records[0].success
        assert records[0].query_type == "rate_prediction"
        assert records[0].source == "ai_router"
        assert records[0].user_id == "u-1"
        assert records[0].input_tokens == 1000

    def test_request_options_forwarded(self):
        self.openai.complete.return_value = _ok()
        request = _request()
        request.max_tokens = 128
        request.temperature = 0.0

        self.router.route(request)

        self.openai.complete.assert_called_once_with(
            "gpt-4o-mini", request.messages, max_tokens=128, temperature=0.0,
        )

    def test_failure_falls_through_to_next_candidate(self):
        self.openai.complete.side_effect = ProviderCallError("openai", "rate limited", 429)
        self.anthropic.complete.return_value = _ok("answer")

        response = self.router.route(_request())

        assert response.model == "claude-3-haiku-20240307"
        assert response.fallback
        failed, succeeded = self._records()
        assert not failed.success
        assert failed.cost_usd == 0.0
        assert failed.input_tokens == 0
        assert failed.error_type == "openai API error 429: rate limited"
        assert succeeded.success

    def test_all_candidates_fail(self):
        self.openai.complete.side_effect = ProviderCallError("openai", "down", 500)
        last = ProviderCallError("anthropic", "overloaded", 529)
        self.anthropic.complete.side_effect = last

        with pytest.raises(AllProvidersFailed) as excinfo:
            self.router.route(_request())

        assert excinfo.value.last_error is last
        assert "overloaded" in str(excinfo.value)
        assert len(self._records()) == 2
        assert self.openai.complete.call_count == 1

    def test_error_type_truncated(self):
        self.openai.complete.side_effect = RuntimeError("x" * 500)
        self.anthropic.complete.return_value = _ok()

        self.router.route(_request())

        assert len(self._records()[0].error_type) == ERROR_TYPE_MAX_LENGTH

    def test_no_models_available(self):
        router = QueryRouter(ProviderRegistry({}), {}, self.ledger)

        with pytest.raises(NoModelsAvailable, match="general_chat"):
            router.route(_request(QueryType.GENERAL_CHAT))

        self.ledger.record.assert_not_called()

    def test_degraded_answer_reported_as_fallback(self):
        catalog = (Provider(
            name=ProviderName.OPENAI,
            base_url="https://api.openai.com/v1",
            models=tuple(m for m in DEFAULT_CATALOG[0].models if m.id == "gpt-4o"),
        ),)
        router = QueryRouter(ProviderRegistry(KEYS, catalog), {ProviderName.OPENAI: self.openai}, self.ledger)
        self.openai.complete.return_value = _ok()

        response = router.route(_request())

        assert response.model == "gpt-4o"
        assert response.fallback

    def test_quick_query_prepends_system_prompt(self):
        self.openai.complete.return_value = _ok("hello")

        text = self.router.quick_query("hi", QueryType.CARRIER_MATCH, system_prompt="Be brief.")

        assert text == "hello"
        messages = self.openai.complete.call_args.args[1]
        assert messages == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "hi"},
        ]
