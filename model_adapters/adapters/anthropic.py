"""Anthropic messages API adapter."""

from typing import Optional, List, Dict, Any, Awaitable, Callable

import httpx

from ..circuit import CircuitBreakerConfig
from ..retry import RetryConfig
from .base import HTTPAdapter, AdapterConfig, AIResponse, Message


class AnthropicAdapter(HTTPAdapter):
    """Anthropic API adapter."""

    provider_name = "Anthropic"
    default_model = "claude-3-opus-20240229"
    default_base_url = "https://api.anthropic.com"
    api_key_env = "ANTHROPIC_API_KEY"
    max_context_window = 200000
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_config: Optional[CircuitBreakerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        super().__init__("Claude", config, retry_config, circuit_config, transport, sleep)

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    def _build_request_body(self, context: List[Message], system_prompt: str) -> Dict[str, Any]:
        """
        Build request body for messages API.

        Anthropic takes the system prompt as a separate top-level field
        rather than as a leading message.
        """
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": self.format_messages(context),
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if system_prompt:
            body["system"] = system_prompt
        return body

    def _parse_response(
        self,
        data: Dict[str, Any],
        context: List[Message],
        system_prompt: str,
        reply_to: List[str],
    ) -> AIResponse:
        text_content = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                text_content += block.get("text", "")

        usage = data.get("usage") or {}

        return self._build_response(
            text_content,
            context,
            system_prompt,
            reply_to,
            input_tokens=usage.get("input_tokens"),
            output_tokens=usage.get("output_tokens"),
            raw_response=data,
        )

    async def _complete(
        self,
        context: List[Message],
        system_prompt: str,
        reply_to: List[str],
    ) -> AIResponse:
        body = self._build_request_body(context, system_prompt)
        data = await self._post("/v1/messages", body)
        return self._parse_response(data, context, system_prompt, reply_to)
