"""
Exception hierarchy for provider routing and chat orchestration.

Only cascade exhaustion, a missing provider configuration and a chat turn with
no working provider are raised to callers. Tool and ledger problems stay
in-band.
"""

from typing import Optional


class FreightAIError(Exception):
    """Base class for all freight-ai errors."""


class ProviderNotConfigured(FreightAIError):
    """Raised when a provider is called without a usable credential."""

    def __init__(self, provider: str):
        super().__init__(f"{provider} is not configured (missing API key)")
        self.provider = provider


class ProviderCallError(FreightAIError):
    """Raised when a vendor API call fails."""

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        prefix = f"{provider} API error {status}" if status is not None else f"{provider} API error"
        super().__init__(f"{prefix}: {message}")
        self.provider = provider
        self.status = status


class NoModelsAvailable(FreightAIError):
    """Raised when no provider has a usable credential."""

    def __init__(self, query_type: str):
        super().__init__(f"No AI models available for {query_type}. Check API keys.")
        self.query_type = query_type


class AllProvidersFailed(FreightAIError):
    """Raised when every model in a cascade failed."""

    def __init__(self, query_type: str, last_error: Optional[BaseException]):
        super().__init__(
            f"All AI providers failed for {query_type}. Last error: {last_error}"
        )
        self.query_type = query_type
        self.last_error = last_error


class ChatUnavailable(FreightAIError):
    """Raised when both the tool-calling and fallback chat providers failed."""
