"""
Application wiring.

Builds every component from an ``AppConfig``; nothing reads the
environment after configuration is loaded.
"""

from dataclasses import dataclass
from typing import Dict

from .chat.orchestrator import ChatOrchestrator, ChatSettings
from .config.loader import AppConfig
from .core.ledger import CostLedger
from .core.providers import ProviderName, ProviderRegistry
from .core.router import QueryRouter
from .sdk import build_provider_clients
from .storage.conversations import ConversationRepository
from .storage.domain import DomainRepository
from .storage.repository import UsageRepository
from .tools.access import DataAccess
from .tools.executor import ToolExecutor


@dataclass(frozen=True)
class Services:
    """Wired application components."""
    registry: ProviderRegistry
    clients: Dict[ProviderName, object]
    usage: UsageRepository
    ledger: CostLedger
    router: QueryRouter
    domain: DomainRepository
    executor: ToolExecutor
    conversations: ConversationRepository
    orchestrator: ChatOrchestrator

    def initialize_storage(self) -> None:
        """Create every table the services use."""
        self.usage.initialize_schema()
        self.domain.initialize_schema()
        self.conversations.initialize_schema()


def build_services(config: AppConfig) -> Services:
    registry = ProviderRegistry(config.credentials)
    clients = build_provider_clients(config.credentials, timeout=config.timeout_seconds)
    usage = UsageRepository(config.storage_path)
    ledger = CostLedger(usage, config.budget.monthly)
    domain = DomainRepository(config.storage_path)
    executor = ToolExecutor(DataAccess(domain))
    conversations = ConversationRepository(config.storage_path)

    tool_model = registry.model_by_id(config.chat.tool_model)
    fallback_model = registry.model_by_id(config.chat.fallback_model)
    if tool_model is None or fallback_model is None:
        raise ValueError(
            f"Unknown chat model: {config.chat.tool_model if tool_model is None else config.chat.fallback_model}"
        )
    if not hasattr(clients[tool_model.provider], "chat_with_tools"):
        raise ValueError(f"{tool_model.provider.value} does not support tool calling")

    orchestrator = ChatOrchestrator(
        executor=executor,
        registry=registry,
        tool_client=clients[tool_model.provider],
        fallback_client=clients[fallback_model.provider],
        conversations=conversations,
        ledger=ledger,
        settings=ChatSettings(
            tool_model=tool_model.id,
            fallback_model=fallback_model.id,
            max_tokens=config.chat.max_tokens,
        ),
    )
    return Services(
        registry=registry,
        clients=clients,
        usage=usage,
        ledger=ledger,
        router=QueryRouter(registry, clients, ledger),
        domain=domain,
        executor=executor,
        conversations=conversations,
        orchestrator=orchestrator,
    )
