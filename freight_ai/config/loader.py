"""
Configuration management and loading.

Reads the YAML settings file and the provider credentials from the
environment once, into an immutable ``AppConfig``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..core.providers import ProviderName
from ..storage.db import DEFAULT_DB_PATH


@dataclass(frozen=True)
class BudgetConfig:
    """Monthly AI spend ceiling."""
    monthly: float = 100.0

    def __post_init__(self):
        """Validate budget values are positive."""
        if self.monthly <= 0:
            raise ValueError("monthly budget must be > 0")


@dataclass(frozen=True)
class ProviderConfig:
    """Where to find a provider's credential and whether to use it."""
    api_key_env: str
    enabled: bool = True


@dataclass(frozen=True)
class ChatConfig:
    """Models and limits for assistant chat turns."""
    tool_model: str = "gpt-4o-mini"
    fallback_model: str = "claude-3-haiku-20240307"
    max_tokens: int = 500

    def __post_init__(self):
        if self.max_tokens <= 0:
            raise ValueError("chat.max_tokens must be > 0")


DEFAULT_PROVIDERS = {
    ProviderName.OPENAI: ProviderConfig(api_key_env="OPENAI_API_KEY"),
    ProviderName.ANTHROPIC: ProviderConfig(api_key_env="ANTHROPIC_API_KEY"),
}


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    providers: Dict[ProviderName, ProviderConfig] = field(default_factory=lambda: dict(DEFAULT_PROVIDERS))
    timeout_seconds: float = 30.0
    chat: ChatConfig = field(default_factory=ChatConfig)
    storage_path: str = DEFAULT_DB_PATH
    credentials: Dict[ProviderName, Optional[str]] = field(default_factory=dict)

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("providers.timeout_seconds must be > 0")


def _read_credentials(
    providers: Mapping[ProviderName, ProviderConfig], environ: Mapping[str, str]
) -> Dict[ProviderName, Optional[str]]:
    return {
        name: environ.get(cfg.api_key_env) if cfg.enabled else None
        for name, cfg in providers.items()
    }


def _check_keys(data: Any, allowed: set, path: str) -> Dict:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
    return data


def _positive_number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"'{path}' must be a number > 0")
    return float(value)


def load_app_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load and validate application configuration.

    Every section is optional. Unknown keys are rejected so a typo cannot
    silently fall back to a default.

    Args:
        path: Path to YAML configuration file; None uses defaults only
        environ: Environment to read credentials from (defaults to os.environ)

    Returns:
        Validated AppConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    environ = os.environ if environ is None else environ
    if path is None:
        return AppConfig(credentials=_read_credentials(DEFAULT_PROVIDERS, environ))

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    raw_config = _check_keys(raw_config or {}, {'budget', 'providers', 'chat', 'storage'}, "config")

    budget = BudgetConfig()
    if 'budget' in raw_config:
        budget_data = _check_keys(raw_config['budget'], {'monthly'}, "budget")
        if 'monthly' in budget_data:
            budget = BudgetConfig(monthly=_positive_number(budget_data['monthly'], "budget.monthly"))

    providers = dict(DEFAULT_PROVIDERS)
    timeout = 30.0
    if 'providers' in raw_config:
        allowed = {'timeout_seconds'} | {name.value for name in ProviderName}
        providers_data = _check_keys(raw_config['providers'], allowed, "providers")
        if 'timeout_seconds' in providers_data:
            timeout = _positive_number(providers_data['timeout_seconds'], "providers.timeout_seconds")
        for name in ProviderName:
            if name.value in providers_data:
                providers[name] = _parse_provider(providers_data[name.value], providers[name], f"providers.{name.value}")

    chat = ChatConfig()
    if 'chat' in raw_config:
        chat_data = _check_keys(raw_config['chat'], {'tool_model', 'fallback_model', 'max_tokens'}, "chat")
        max_tokens = chat_data.get('max_tokens', chat.max_tokens)
        if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens <= 0:
            raise ValueError("'chat.max_tokens' must be an integer > 0")
        chat = ChatConfig(
            tool_model=str(chat_data.get('tool_model', chat.tool_model)),
            fallback_model=str(chat_data.get('fallback_model', chat.fallback_model)),
            max_tokens=max_tokens,
        )

    storage_path = DEFAULT_DB_PATH
    if 'storage' in raw_config:
        storage_data = _check_keys(raw_config['storage'], {'path'}, "storage")
        storage_path = str(storage_data.get('path', storage_path))

    return AppConfig(
        budget=budget,
        providers=providers,
        timeout_seconds=timeout,
        chat=chat,
        storage_path=storage_path,
        credentials=_read_credentials(providers, environ),
    )


def _parse_provider(data: Any, default: ProviderConfig, path: str) -> ProviderConfig:
    """Parse and validate one provider section."""
    data = _check_keys(data, {'api_key_env', 'enabled'}, path)

    api_key_env = data.get('api_key_env', default.api_key_env)
    if not isinstance(api_key_env, str) or not api_key_env:
        raise ValueError(f"'api_key_env' in {path} must be a non-empty string")

    enabled = data.get('enabled', default.enabled)
    if not isinstance(enabled, bool):
        raise ValueError(f"'enabled' in {path} must be true or false")

    return ProviderConfig(api_key_env=api_key_env, enabled=enabled)
