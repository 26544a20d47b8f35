"""OpenAI-compatible chat completion adapters."""

from typing import Optional, List, Dict, Any, Awaitable, Callable

import httpx

from ..circuit import CircuitBreakerConfig
from ..retry import RetryConfig
from .base import HTTPAdapter, AdapterConfig, AIResponse, Message


class OpenAIAdapter(HTTPAdapter):
    """OpenAI chat completions API."""

    provider_name = "OpenAI"
    default_model = "gpt-4-turbo-preview"
    default_base_url = "https://api.openai.com/v1"
    api_key_env = "OPENAI_API_KEY"
    max_context_window = 128000
    display_name = "ChatGPT"

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_config: Optional[CircuitBreakerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        super().__init__(self.display_name, config, retry_config, circuit_config, transport, sleep)

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_request_body(self, context: List[Message], system_prompt: str) -> Dict[str, Any]:
        """Build request body for chat completion."""
        return {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}] + self.format_messages(context),
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }

    def _parse_response(
        self,
        data: Dict[str, Any],
        context: List[Message],
        system_prompt: str,
        reply_to: List[str],
    ) -> AIResponse:
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}

        return self._build_response(
            content,
            context,
            system_prompt,
            reply_to,
            input_tokens=usage.get("prompt_tokens"),
            output_tokens=usage.get("completion_tokens"),
            total_tokens=usage.get("total_tokens"),
            raw_response=data,
        )

    async def _complete(
        self,
        context: List[Message],
        system_prompt: str,
        reply_to: List[str],
    ) -> AIResponse:
        body = self._build_request_body(context, system_prompt)
        data = await self._post("/chat/completions", body)
        return self._parse_response(data, context, system_prompt, reply_to)


class GrokAdapter(OpenAIAdapter):
    """xAI Grok, served over an OpenAI-compatible API."""

    provider_name = "Grok"
    default_model = "grok-beta"
    default_base_url = "https://api.x.ai/v1"
    api_key_env = "GROK_API_KEY"
    display_name = "Grok"
