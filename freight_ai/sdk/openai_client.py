"""
OpenAI provider client.

Wraps chat completions for plain completions and for tool-calling turns.
Usage recording is left to the caller, which knows the query type.
"""

import json
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from .base import ChatTurn, Completion, ToolCall
from ..core.errors import ProviderCallError, ProviderNotConfigured
from ..core.providers import has_usable_credential
from ..core.token_counter import TokenUsage


class OpenAIProvider:
    """OpenAI chat completions client.

    The underlying SDK client is created lazily and with retries disabled:
    the router's cascade is the retry policy.
    """

    name = "openai"

    def __init__(self, api_key: Optional[str], timeout: float = 30.0, base_url: Optional[str] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url
        self._client: Optional[OpenAI] = None

    @property
    def configured(self) -> bool:
        return has_usable_credential(self.api_key)

    @property
    def client(self) -> OpenAI:
        if not self.configured:
            raise ProviderNotConfigured(self.name)
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> Completion:
        """Create a chat completion and return its text and usage.

        Raises:
            ProviderNotConfigured: If no API key is set
            ProviderCallError: If the API call fails
        """
        response = self._create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        content = response.choices[0].message.content if response.choices else None
        return Completion(content=content or "", usage=_usage(response))

    def chat_with_tools(
        self,
        model: str,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        max_tokens: int = 500,
    ) -> ChatTurn:
        """Run one tool-calling turn.

        Args:
            model: Model id
            system_prompt: System instruction
            messages: Conversation so far in OpenAI message format
            tools: Function schemas as exported by the tool registry
            max_tokens: Completion token limit

        Returns:
            ChatTurn with the model's text and requested tool calls
        """
        response = self._create(
            model=model,
            messages=[{"role": "system", "content": system_prompt}] + messages,
            tools=tools,
            max_tokens=max_tokens,
        )
        message = response.choices[0].message
        calls = []
        for call in message.tool_calls or []:
            calls.append(ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=_parse_arguments(call.function.arguments),
            ))
        return ChatTurn(text=message.content, tool_calls=calls, usage=_usage(response))

    def _create(self, **kwargs: Any):
        try:
            return self.client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise ProviderCallError(self.name, str(e)[:200], getattr(e, "status_code", None)) from e


def _usage(response) -> TokenUsage:
    usage = response.usage
    if not usage:
        return TokenUsage()
    return TokenUsage(
        input_tokens=usage.prompt_tokens or 0,
        output_tokens=usage.completion_tokens or 0,
    )


def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
