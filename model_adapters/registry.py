"""Directory of live adapters, keyed by alias or composite model id."""

import logging
import threading
from typing import Callable, Optional, List, Dict, Tuple, Type

from .adapters.base import AdapterConfig, BaseAdapter, HTTPAdapter
from .adapters.anthropic import AnthropicAdapter
from .adapters.cursor import CursorAdapter
from .adapters.openai import OpenAIAdapter, GrokAdapter
from .adapters.openrouter import OpenRouterAdapter, MODEL_ID_SEPARATOR
from .config import RegistryConfig

logger = logging.getLogger(__name__)

# Registry config attribute -> (aliases, adapter class)
PROVIDER_ALIASES: Dict[str, Tuple[Tuple[str, ...], Type[HTTPAdapter]]] = {
    "openai": (("chatgpt", "openai"), OpenAIAdapter),
    "anthropic": (("claude", "anthropic"), AnthropicAdapter),
    "grok": (("grok",), GrokAdapter),
}


class AdapterRegistry:
    """
    Maps adapter names to adapter instances.

    Configured providers are registered under their aliases at construction.
    Composite "provider/model" ids are turned into OpenRouter adapters the
    first time they are looked up and cached under both the lowercase and
    the original-case key, so later lookups return the same instance.
    """

    def __init__(self, config: Optional[RegistryConfig] = None):
        self.config = config or RegistryConfig()
        self._adapters: Dict[str, BaseAdapter] = {}
        self._lock = threading.RLock()

        for attr, (aliases, adapter_class) in PROVIDER_ALIASES.items():
            provider_config = getattr(self.config, attr)
            if provider_config is None:
                continue
            self._register_provider(aliases, lambda c=provider_config, cls=adapter_class: cls(
                c,
                retry_config=self.config.retry_config,
                circuit_config=self.config.circuit_config,
            ))

        self._register_provider(("cursor",), lambda: CursorAdapter(self.config.cursor))

    def _register_provider(self, aliases: Tuple[str, ...], factory: Callable[[], BaseAdapter]) -> None:
        try:
            adapter = factory()
        except Exception as e:
            logger.error("Failed to register %s adapter: %s", aliases[0], e)
            return

        for alias in aliases:
            self.register(alias, adapter)
        logger.info("%s adapter registered as %s", adapter.get_model_name(), ", ".join(aliases))

    def register(self, name: str, adapter: BaseAdapter) -> BaseAdapter:
        """Register ``adapter`` under ``name`` unless the name is taken.

        Returns the adapter now stored under the name.
        """
        with self._lock:
            return self._adapters.setdefault(name.lower(), adapter)

    def _lookup(self, name: str) -> Optional[BaseAdapter]:
        return self._adapters.get(name.lower()) or self._adapters.get(name)

    def _create_composite(self, model_id: str) -> BaseAdapter:
        config = AdapterConfig(
            api_key=self.config.openrouter_api_key,
            base_url=self.config.openrouter_base_url,
        )
        return OpenRouterAdapter(
            model_id,
            config,
            retry_config=self.config.retry_config,
            circuit_config=self.config.circuit_config,
        )

    def get_adapter(self, name: str) -> Optional[BaseAdapter]:
        """
        Get an adapter by alias or composite model id.

        Returns None when the name is unknown or its adapter cannot be built.
        """
        adapter = self._lookup(name)
        if adapter is not None or MODEL_ID_SEPARATOR not in name:
            return adapter

        with self._lock:
            adapter = self._lookup(name)
            if adapter is not None:
                return adapter

            try:
                adapter = self._create_composite(name)
            except Exception as e:
                logger.error("Failed to create adapter for %s: %s", name, e)
                return None

            self._adapters[name.lower()] = adapter
            self._adapters[name] = adapter
            logger.info("Created adapter for model %s", name)
            return adapter

    def has_adapter(self, name: str) -> bool:
        return self._lookup(name) is not None

    def get_all_adapters(self) -> List[BaseAdapter]:
        """Distinct adapter instances, in registration order."""
        seen: Dict[int, BaseAdapter] = {}
        for adapter in list(self._adapters.values()):
            seen.setdefault(id(adapter), adapter)
        return list(seen.values())

    def get_available_adapters(self) -> List[str]:
        """All registered keys, aliases included."""
        return list(self._adapters.keys())

    async def close_async(self) -> None:
        """Close every cached adapter."""
        for adapter in self.get_all_adapters():
            await adapter.close_async()

    async def __aenter__(self) -> "AdapterRegistry":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_async()
