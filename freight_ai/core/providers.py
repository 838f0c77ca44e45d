"""
Provider registry.

Static catalog of LLM providers and their models, filtered by which
credentials are present in the loaded configuration.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple


class ProviderName(Enum):
    """Supported LLM vendors."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class Tier(Enum):
    """Quality/cost classification of a model."""
    ECONOMY = "economy"
    STANDARD = "standard"
    PREMIUM = "premium"


class Capability(Enum):
    """Things a model can do."""
    CHAT = "chat"
    COMPLETION = "completion"
    VISION = "vision"


class QueryType(Enum):
    """Kinds of single-shot queries the router serves."""
    RATE_PREDICTION = "rate_prediction"
    CARRIER_MATCH = "carrier_match"
    EMAIL_CLASSIFICATION = "email_classification"
    EMAIL_EXTRACTION = "email_extraction"
    CUSTOMER_INSIGHTS = "customer_insights"
    LANE_ANALYSIS = "lane_analysis"
    RISK_ASSESSMENT = "risk_assessment"
    GENERAL_CHAT = "general_chat"
    DOCUMENT_ANALYSIS = "document_analysis"


QUERY_TYPE_TIER: Dict[QueryType, Tier] = {
    QueryType.RATE_PREDICTION: Tier.ECONOMY,
    QueryType.CARRIER_MATCH: Tier.ECONOMY,
    QueryType.EMAIL_CLASSIFICATION: Tier.ECONOMY,
    QueryType.EMAIL_EXTRACTION: Tier.STANDARD,
    QueryType.CUSTOMER_INSIGHTS: Tier.STANDARD,
    QueryType.LANE_ANALYSIS: Tier.STANDARD,
    QueryType.RISK_ASSESSMENT: Tier.STANDARD,
    QueryType.GENERAL_CHAT: Tier.STANDARD,
    QueryType.DOCUMENT_ANALYSIS: Tier.PREMIUM,
}

QUERY_TYPE_CAPABILITY: Dict[QueryType, Capability] = {
    query_type: Capability.COMPLETION for query_type in QueryType
}
QUERY_TYPE_CAPABILITY[QueryType.DOCUMENT_ANALYSIS] = Capability.VISION

# Keys at or below this length are treated as placeholders
MIN_CREDENTIAL_LENGTH = 10


def has_usable_credential(key: Optional[str]) -> bool:
    """True for a key longer than the placeholder threshold."""
    return bool(key) and len(key.strip()) > MIN_CREDENTIAL_LENGTH


@dataclass(frozen=True)
class Model:
    """A model offered by a provider, with its pricing and tier."""
    id: str
    provider: ProviderName
    display_name: str
    cost_per_1k_input: Decimal
    cost_per_1k_output: Decimal
    max_tokens: int
    latency_ms: int
    capabilities: Tuple[Capability, ...]
    tier: Tier

    def supports(self, capability: Optional[Capability]) -> bool:
        return capability is None or capability in self.capabilities


@dataclass(frozen=True)
class Provider:
    """An LLM vendor and the models it serves."""
    name: ProviderName
    base_url: str
    models: Tuple[Model, ...]
    enabled: bool = True


_ALL = (Capability.CHAT, Capability.COMPLETION, Capability.VISION)
_TEXT = (Capability.CHAT, Capability.COMPLETION)

DEFAULT_CATALOG: Tuple[Provider, ...] = (
    Provider(
        name=ProviderName.OPENAI,
        base_url="https://api.openai.com/v1",
        models=(
            Model("gpt-4o", ProviderName.OPENAI, "GPT-4o",
                  Decimal("0.0025"), Decimal("0.01"), 128000, 2000, _ALL, Tier.STANDARD),
            Model("gpt-4o-mini", ProviderName.OPENAI, "GPT-4o Mini",
                  Decimal("0.00015"), Decimal("0.0006"), 128000, 800, _TEXT, Tier.ECONOMY),
            Model("gpt-4-turbo", ProviderName.OPENAI, "GPT-4 Turbo",
                  Decimal("0.01"), Decimal("0.03"), 128000, 5000, _ALL, Tier.PREMIUM),
        ),
    ),
    Provider(
        name=ProviderName.ANTHROPIC,
        base_url="https://api.anthropic.com/v1",
        models=(
            Model("claude-3-5-sonnet-20241022", ProviderName.ANTHROPIC, "Claude 3.5 Sonnet",
                  Decimal("0.003"), Decimal("0.015"), 200000, 2000, _ALL, Tier.STANDARD),
            Model("claude-3-haiku-20240307", ProviderName.ANTHROPIC, "Claude 3 Haiku",
                  Decimal("0.00025"), Decimal("0.00125"), 200000, 500, _TEXT, Tier.ECONOMY),
            Model("claude-3-opus-20240229", ProviderName.ANTHROPIC, "Claude 3 Opus",
                  Decimal("0.015"), Decimal("0.075"), 200000, 8000, _ALL, Tier.PREMIUM),
        ),
    ),
)


def _by_input_cost(models: List[Model]) -> List[Model]:
    return sorted(models, key=lambda m: m.cost_per_1k_input)


class ProviderRegistry:
    """Read-only view of the catalog given the configured credentials.

    Built once at startup; nothing here mutates after construction.
    """

    def __init__(
        self,
        credentials: Mapping[ProviderName, Optional[str]],
        catalog: Tuple[Provider, ...] = DEFAULT_CATALOG,
    ):
        self.catalog = catalog
        self._credentials = dict(credentials)

    def is_available(self, provider: ProviderName) -> bool:
        return any(p.name == provider for p in self.list_available())

    def list_available(self) -> List[Provider]:
        """Providers that are enabled and have a non-trivial credential."""
        available = []
        for provider in self.catalog:
            if provider.enabled and has_usable_credential(self._credentials.get(provider.name)):
                available.append(provider)
        return available

    def models_for_tier(self, tier: Tier, capability: Optional[Capability] = None) -> List[Model]:
        """Available models in a tier, cheapest input cost first."""
        models = [
            model
            for provider in self.list_available()
            for model in provider.models
            if model.tier == tier and model.supports(capability)
        ]
        return _by_input_cost(models)

    def all_available_models(self, capability: Optional[Capability] = None) -> List[Model]:
        """Every available model regardless of tier, cheapest first."""
        models = [
            model
            for provider in self.list_available()
            for model in provider.models
            if model.supports(capability)
        ]
        return _by_input_cost(models)

    def model_by_id(self, model_id: str) -> Optional[Model]:
        for provider in self.catalog:
            for model in provider.models:
                if model.id == model_id:
                    return model
        return None
