"""
Anthropic provider client.

Plain completions over the Messages HTTP API; no tool calling.
"""

from typing import Any, Dict, List, Optional

import httpx

from .base import Completion
from ..core.errors import ProviderCallError, ProviderNotConfigured
from ..core.providers import has_usable_credential
from ..core.token_counter import TokenUsage

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider:
    """Anthropic Messages API client."""

    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 30.0,
        base_url: str = "https://api.anthropic.com/v1",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url
        self.transport = transport

    @property
    def configured(self) -> bool:
        return has_usable_credential(self.api_key)

    def complete(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> Completion:
        """Send messages and return the first text block.

        System messages are lifted out into the ``system`` field, which is
        where the Messages API expects them.

        Raises:
            ProviderNotConfigured: If no API key is set
            ProviderCallError: On transport errors or non-2xx responses
        """
        if not self.configured:
            raise ProviderNotConfigured(self.name)

        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        payload = {
            "model": model,
            "system": system,
            "messages": [
                {"role": m["role"], "content": m["content"]}
                for m in messages
                if m["role"] in ("user", "assistant")
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = client.post("/messages", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderCallError(self.name, str(e)[:200]) from e

        if response.status_code >= 400:
            raise ProviderCallError(self.name, response.text[:200], response.status_code)

        data = response.json()
        blocks = data.get("content") or []
        text = next((b.get("text", "") for b in blocks if b.get("type") == "text"), "")
        usage = data.get("usage") or {}
        return Completion(
            content=text,
            usage=TokenUsage(
                input_tokens=usage.get("input_tokens", 0),
                output_tokens=usage.get("output_tokens", 0),
            ),
        )
