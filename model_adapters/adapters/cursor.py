"""Cursor adapter placeholder."""

import logging
from typing import Optional, List

from ..errors import ConfigurationError, UnimplementedError
from .base import BaseAdapter, AdapterConfig, AIResponse, Message

logger = logging.getLogger(__name__)


class CursorAdapter(BaseAdapter):
    """
    Placeholder for a Cursor API that is not publicly available.

    Construction never fails, even without configuration, so the adapter can
    always be registered. Every call to ``generate_response`` fails.
    """

    provider_name = "Cursor"
    max_context_window = 128000

    def __init__(self, config: Optional[AdapterConfig] = None):
        super().__init__("Cursor", config)
        self.missing_settings = [
            name
            for name, value in (
                ("api key", self.config.get_api_key()),
                ("model", self.config.model),
                ("base URL", self.config.base_url),
            )
            if not value
        ]
        if self.missing_settings:
            logger.debug("Cursor adapter missing %s", ", ".join(self.missing_settings))

    @property
    def is_configured(self) -> bool:
        return not self.missing_settings

    async def generate_response(
        self,
        context: List[Message],
        system_prompt: str,
        reply_to: Optional[List[str]] = None,
    ) -> AIResponse:
        if not self.is_configured:
            raise ConfigurationError(
                "Cursor API not configured. API key, model, and base URL are required.",
                provider=self.provider_name,
            )

        logger.warning("Cursor adapter called but not implemented")
        raise UnimplementedError(
            "adapter not yet implemented. Please check if Cursor has a public API.",
            provider=self.provider_name,
        )
