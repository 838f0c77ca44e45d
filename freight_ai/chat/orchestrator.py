"""
Conversation orchestrator.

Runs one assistant chat turn:

1. Resolve the caller, the system prompt and the conversation history
2. Ask the tool-calling model; execute the tools it requests and feed the
   results back, for at most ``max_tool_rounds`` rounds
3. If the tool-calling provider is missing or fails, fetch a small data
   snapshot through the executor and make one plain completion call on the
   fallback provider
4. Persist the user message and the reply to the active conversation

Every model call is written to the cost ledger.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .prompts import EMPTY_REPLY, NOT_CONFIGURED_REPLY, SNAPSHOT_HEADER, build_system_prompt
from ..core.errors import ChatUnavailable
from ..core.ledger import CostLedger
from ..core.pricing import calculate_cost
from ..core.providers import ProviderRegistry, QueryType
from ..core.router import ERROR_TYPE_MAX_LENGTH
from ..core.token_counter import TokenUsage
from ..storage.conversations import ConversationRepository
from ..storage.models import Conversation, ConversationMessage, UsageRecord
from ..tools.actions import ActionButton, suggest_actions
from ..tools.definitions import ToolName, openai_tool_schema
from ..tools.executor import ToolExecutor
from ..tools.roles import ToolContext, caller_from_role
from ..utils.logging import get_logger

logger = get_logger(__name__)

CHAT_SOURCE = "chat"


@dataclass(frozen=True)
class ChatSettings:
    """Tunables for chat turns."""
    tool_model: str = "gpt-4o-mini"
    fallback_model: str = "claude-3-haiku-20240307"
    max_tokens: int = 500
    max_tool_rounds: int = 3
    history_limit: int = 10
    conversation_ttl: timedelta = timedelta(hours=24)
    snapshot_max_chars: int = 3000


@dataclass(frozen=True)
class ChatReply:
    """Result of one chat turn."""
    reply: str
    actions: List[ActionButton] = field(default_factory=list)
    provider: str = "none"
    conversation_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reply": self.reply,
            "actions": [a.to_dict() for a in self.actions],
            "provider": self.provider,
            "conversation_id": self.conversation_id,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatOrchestrator:
    """Drives tool-calling chat turns with a plain-completion fallback."""

    def __init__(
        self,
        executor: ToolExecutor,
        registry: ProviderRegistry,
        tool_client: Any,
        fallback_client: Any,
        conversations: ConversationRepository,
        ledger: CostLedger,
        settings: ChatSettings = ChatSettings(),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.executor = executor
        self.registry = registry
        self.tool_client = tool_client
        self.fallback_client = fallback_client
        self.conversations = conversations
        self.ledger = ledger
        self.settings = settings
        self.clock = clock

    def chat(
        self,
        user_id: str,
        role: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
        console_context: str = "internal",
        carrier_id: Optional[str] = None,
    ) -> ChatReply:
        """Answer one user message.

        Args:
            user_id: Authenticated user id
            role: Platform role string
            message: The user's message
            history: Prior messages; when omitted, the stored conversation is used
            console_context: Application surface the chat belongs to
            carrier_id: Carrier profile id for carrier users

        Returns:
            ChatReply with the text, action suggestions and answering provider

        Raises:
            ValueError: If the message is empty
            ChatUnavailable: If both providers failed
        """
        if not message or not message.strip():
            raise ValueError("Message is required")

        if not self.tool_client.configured and not self.fallback_client.configured:
            return ChatReply(reply=NOT_CONFIGURED_REPLY)

        ctx = caller_from_role(user_id, role, carrier_id)
        system_prompt = build_system_prompt(ctx, console_context)
        conversation = self._recent_conversation(user_id, console_context)
        if history is not None:
            prior = history
        else:
            prior = [m.to_dict() for m in conversation.messages] if conversation else []
        messages = [
            {"role": m["role"], "content": m["content"]}
            for m in prior[-self.settings.history_limit:]
            if m.get("role") in ("user", "assistant")
        ]
        messages.append({"role": "user", "content": message})

        reply: Optional[str] = None
        actions: List[ActionButton] = []
        provider = self.tool_client.name
        if self.tool_client.configured:
            try:
                reply = self._run_tool_loop(ctx, system_prompt, messages, actions)
            except Exception as e:
                logger.warning(
                    "chat_fallback",
                    provider=self.tool_client.name,
                    fallback=self.fallback_client.name,
                    error=str(e),
                )
                actions = []

        if reply is None:
            if not self.fallback_client.configured:
                raise ChatUnavailable("Tool-calling provider failed and no fallback provider is configured")
            provider = self.fallback_client.name
            reply = self._run_fallback(ctx, system_prompt, messages)

        now = self.clock()
        if conversation is None:
            conversation = self.conversations.create(user_id, console_context, now)
        conversation = self.conversations.append_messages(
            conversation,
            [
                ConversationMessage(role="user", content=message, timestamp=now),
                ConversationMessage(role="assistant", content=reply, timestamp=now, actions=actions),
            ],
            now,
        )
        return ChatReply(reply=reply, actions=actions, provider=provider, conversation_id=conversation.id)

    def _recent_conversation(self, user_id: str, console_context: str) -> Optional[Conversation]:
        return self.conversations.find_recent(
            user_id, console_context, self.clock() - self.settings.conversation_ttl
        )

    def _run_tool_loop(
        self,
        ctx: ToolContext,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        actions: List[ActionButton],
    ) -> str:
        """Model turns with tool execution; tool requests past the round cap are ignored."""
        transcript = list(messages)
        tools = openai_tool_schema()
        rounds = 0
        while True:
            turn = self._timed_call(
                self.tool_client,
                self.settings.tool_model,
                lambda: self.tool_client.chat_with_tools(
                    self.settings.tool_model,
                    system_prompt,
                    transcript,
                    tools,
                    max_tokens=self.settings.max_tokens,
                ),
                ctx,
            )
            if not turn.tool_calls or rounds >= self.settings.max_tool_rounds:
                if turn.tool_calls:
                    logger.info("tool_rounds_exhausted", rounds=rounds, ignored=[c.name for c in turn.tool_calls])
                return turn.text or EMPTY_REPLY

            rounds += 1
            transcript.append({
                "role": "assistant",
                "content": turn.text,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                    }
                    for call in turn.tool_calls
                ],
            })
            for call in turn.tool_calls:
                result = self.executor.execute(call.name, call.arguments, ctx)
                actions.extend(suggest_actions(call.name, call.arguments, result))
                transcript.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(result, default=str),
                })

    def _run_fallback(self, ctx: ToolContext, system_prompt: str, messages: List[Dict[str, Any]]) -> str:
        snapshot = json.dumps(
            {
                "loads": self.executor.execute(ToolName.GET_LOAD_INFO.value, {}, ctx),
                "recent_activity": self.executor.execute(ToolName.GET_RECENT_ACTIVITY.value, {}, ctx),
            },
            default=str,
        )[:self.settings.snapshot_max_chars]
        prompt = f"{system_prompt}\n\n{SNAPSHOT_HEADER}\n{snapshot}"
        try:
            completion = self._timed_call(
                self.fallback_client,
                self.settings.fallback_model,
                lambda: self.fallback_client.complete(
                    self.settings.fallback_model,
                    [{"role": "system", "content": prompt}] + messages,
                    max_tokens=self.settings.max_tokens,
                ),
                ctx,
            )
        except Exception as e:
            logger.error("chat_unavailable", provider=self.fallback_client.name, error=str(e))
            raise ChatUnavailable(f"All chat providers failed. Last error: {e}") from e
        return completion.content or EMPTY_REPLY

    def _timed_call(self, client: Any, model_id: str, call: Callable[[], Any], ctx: ToolContext) -> Any:
        """Invoke a provider and write the attempt to the ledger."""
        started = time.monotonic()
        try:
            result = call()
        except Exception as e:
            self._record(client, model_id, started, ctx, TokenUsage(), error=e)
            raise
        self._record(client, model_id, started, ctx, result.usage)
        return result

    def _record(
        self,
        client: Any,
        model_id: str,
        started: float,
        ctx: ToolContext,
        usage: TokenUsage,
        error: Optional[Exception] = None,
    ) -> None:
        model = self.registry.model_by_id(model_id)
        cost = calculate_cost(model, usage) if model is not None and error is None else 0.0
        self.ledger.record(UsageRecord(
            provider=client.name,
            model=model_id,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost_usd=cost,
            latency_ms=int((time.monotonic() - started) * 1000),
            query_type=QueryType.GENERAL_CHAT.value,
            source=CHAT_SOURCE,
            success=error is None,
            error_type=str(error)[:ERROR_TYPE_MAX_LENGTH] if error is not None else None,
            user_id=ctx.user_id,
            created_at=self.clock(),
        ))
