"""
Query router.

Builds a cost-ordered cascade of capable models for a query type and tries
them one after another until one answers. Every attempt is written to the
cost ledger.

Cascade selection:
1. A preferred model that exists in the catalog heads the cascade, followed
   by the rest of the tier, cheapest first
2. Otherwise the tier's models, cheapest first
3. If the tier has no available model, every available model, cheapest
   first (degraded, reported as a fallback)
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from .errors import AllProvidersFailed, NoModelsAvailable
from .ledger import CostLedger
from .pricing import calculate_cost
from .providers import (
    QUERY_TYPE_CAPABILITY,
    QUERY_TYPE_TIER,
    Model,
    ProviderName,
    ProviderRegistry,
    QueryType,
)
from ..storage.models import UsageRecord
from ..utils.logging import get_logger

logger = get_logger(__name__)

ERROR_TYPE_MAX_LENGTH = 100


@dataclass
class RouteRequest:
    """A single-shot query to route."""
    query_type: QueryType
    messages: List[Dict[str, str]]
    preferred_model: Optional[str] = None
    max_tokens: int = 2000
    temperature: float = 0.3
    user_id: Optional[str] = None
    source: str = "ai_router"


@dataclass(frozen=True)
class RouteResponse:
    """Answer from the model that won the cascade."""
    content: str
    model: str
    provider: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    latency_ms: int
    fallback: bool


@dataclass(frozen=True)
class Cascade:
    """Ordered candidate models for one request."""
    models: List[Model] = field(default_factory=list)
    degraded: bool = False


class QueryRouter:
    """Routes queries across providers with cascade fallback.

    Candidates are tried strictly in order. A failed candidate is recorded
    before the next one is attempted; the same model is never retried.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        clients: Mapping[ProviderName, object],
        ledger: CostLedger,
    ):
        self.registry = registry
        self.clients = clients
        self.ledger = ledger

    def build_cascade(self, query_type: QueryType, preferred_model: Optional[str] = None) -> Cascade:
        """Select candidate models for a query type."""
        tier = QUERY_TYPE_TIER[query_type]
        capability = QUERY_TYPE_CAPABILITY[query_type]
        tier_models = self.registry.models_for_tier(tier, capability)

        if preferred_model:
            head = self.registry.model_by_id(preferred_model)
            if head is not None and head.supports(capability):
                return Cascade([head] + [m for m in tier_models if m.id != head.id])

        if tier_models:
            return Cascade(tier_models)

        degraded = self.registry.all_available_models(capability)
        if degraded:
            logger.warning(
                "tier_unavailable_degrading",
                query_type=query_type.value,
                tier=tier.value,
                candidates=[m.id for m in degraded],
            )
        return Cascade(degraded, degraded=True)

    def route(self, request: RouteRequest) -> RouteResponse:
        """Run the cascade for a request.

        Raises:
            NoModelsAvailable: If no provider is configured at all
            AllProvidersFailed: If every candidate failed
        """
        cascade = self.build_cascade(request.query_type, request.preferred_model)
        if not cascade.models:
            raise NoModelsAvailable(request.query_type.value)

        last_error: Optional[Exception] = None
        for position, model in enumerate(cascade.models):
            started = time.monotonic()
            try:
                completion = self.clients[model.provider].complete(
                    model.id,
                    request.messages,
                    max_tokens=request.max_tokens,
                    temperature=request.temperature,
                )
            except Exception as e:
                last_error = e
                latency_ms = _elapsed_ms(started)
                logger.warning(
                    "provider_call_failed",
                    provider=model.provider.value,
                    model=model.id,
                    attempt=position + 1,
                    candidates=len(cascade.models),
                    error=str(e),
                )
                self.ledger.record(self._usage(request, model, latency_ms, error=e))
                continue

            latency_ms = _elapsed_ms(started)
            cost = calculate_cost(model, completion.usage)
            self.ledger.record(self._usage(
                request,
                model,
                latency_ms,
                input_tokens=completion.usage.input_tokens,
                output_tokens=completion.usage.output_tokens,
                cost=cost,
            ))
            return RouteResponse(
                content=completion.content,
                model=model.id,
                provider=model.provider.value,
                input_tokens=completion.usage.input_tokens,
                output_tokens=completion.usage.output_tokens,
                cost_usd=cost,
                latency_ms=latency_ms,
                fallback=position > 0 or cascade.degraded,
            )

        raise AllProvidersFailed(request.query_type.value, last_error)

    def quick_query(
        self,
        prompt: str,
        query_type: QueryType = QueryType.GENERAL_CHAT,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Route a single prompt and return only the text."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return self.route(RouteRequest(query_type=query_type, messages=messages)).content

    @staticmethod
    def _usage(
        request: RouteRequest,
        model: Model,
        latency_ms: int,
        input_tokens: int = 0,
        output_tokens: int = 0,
        cost: float = 0.0,
        error: Optional[Exception] = None,
    ) -> UsageRecord:
        return UsageRecord(
            provider=model.provider.value,
            model=model.id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=cost,
            latency_ms=latency_ms,
            query_type=request.query_type.value,
            source=request.source,
            success=error is None,
            error_type=str(error)[:ERROR_TYPE_MAX_LENGTH] if error is not None else None,
            user_id=request.user_id,
            created_at=datetime.now(timezone.utc),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
