"""
Provider clients for freight-ai.

One client per ``ProviderName``; ``build_provider_clients`` constructs all of
them from the loaded configuration.
"""

from typing import Dict, Mapping, Optional

from .anthropic_client import AnthropicProvider
from .base import ChatTurn, Completion, ToolCall
from .openai_client import OpenAIProvider
from ..core.providers import ProviderName


_CLIENT_FACTORIES = {
    ProviderName.OPENAI: OpenAIProvider,
    ProviderName.ANTHROPIC: AnthropicProvider,
}

if set(_CLIENT_FACTORIES) != set(ProviderName):
    raise RuntimeError("every ProviderName needs a client factory")


def build_provider_clients(
    credentials: Mapping[ProviderName, Optional[str]],
    timeout: float = 30.0,
) -> Dict[ProviderName, object]:
    """Create a client for every provider, keyed by provider name."""
    return {
        name: factory(credentials.get(name), timeout=timeout)
        for name, factory in _CLIENT_FACTORIES.items()
    }


__all__ = [
    "AnthropicProvider",
    "ChatTurn",
    "Completion",
    "OpenAIProvider",
    "ToolCall",
    "build_provider_clients",
]
