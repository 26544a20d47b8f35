"""Registry configuration."""

import os
from dataclasses import dataclass
from typing import Optional, Mapping

from .adapters.base import AdapterConfig
from .circuit import CircuitBreakerConfig
from .retry import RetryConfig


@dataclass
class RegistryConfig:
    """Configuration for the adapter registry."""

    # Provider configs; None leaves the provider unregistered
    openai: Optional[AdapterConfig] = None
    anthropic: Optional[AdapterConfig] = None
    grok: Optional[AdapterConfig] = None
    cursor: Optional[AdapterConfig] = None

    # Used for adapters created on demand from "provider/model" ids
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: Optional[str] = None

    # Shared resilience settings, None means adapter defaults
    retry_config: Optional[RetryConfig] = None
    circuit_config: Optional[CircuitBreakerConfig] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RegistryConfig":
        """
        Build a config from environment variables.

        Presence is not validated here: a missing key just means the matching
        adapter is not registered.
        """
        env = os.environ if environ is None else environ

        def provider(key: str, model: str, default_model: str, base_url: Optional[str] = None,
                     default_base_url: Optional[str] = None) -> Optional[AdapterConfig]:
            api_key = env.get(key)
            if not api_key:
                return None
            return AdapterConfig(
                api_key=api_key,
                model=env.get(model) or default_model,
                base_url=(env.get(base_url) if base_url else None) or default_base_url,
            )

        return cls(
            openai=provider("OPENAI_API_KEY", "OPENAI_MODEL", "gpt-4-turbo-preview"),
            anthropic=provider("ANTHROPIC_API_KEY", "ANTHROPIC_MODEL", "claude-3-opus-20240229"),
            grok=provider("GROK_API_KEY", "GROK_MODEL", "grok-beta", "GROK_BASE_URL", "https://api.x.ai/v1"),
            cursor=AdapterConfig(
                api_key=env.get("CURSOR_API_KEY"),
                model=env.get("CURSOR_MODEL"),
                base_url=env.get("CURSOR_BASE_URL"),
            ),
            openrouter_api_key=env.get("OPENROUTER_API_KEY") or None,
        )
