"""OpenRouter adapter for composite "provider/model" ids."""

import dataclasses
from typing import Optional, List, Dict, Any, Awaitable, Callable

import httpx

from ..circuit import CircuitBreakerConfig
from ..errors import ConfigurationError
from ..retry import RetryConfig
from .base import AdapterConfig, AIResponse, Message
from .openai import OpenAIAdapter

MODEL_ID_SEPARATOR = "/"


def display_name_for(model_id: str) -> str:
    """Human-readable name, e.g. "openai/gpt-4o" -> "Openai gpt-4o"."""
    provider, _, model = model_id.partition(MODEL_ID_SEPARATOR)
    provider = provider or "OpenRouter"
    return f"{provider[:1].upper()}{provider[1:]} {model or model_id}"


class OpenRouterAdapter(OpenAIAdapter):
    """
    Any model reachable through OpenRouter's OpenAI-compatible API.

    The model is addressed by its full id, such as "openai/gpt-4o" or
    "anthropic/claude-3.5-sonnet". OpenRouter reports the request cost in
    the usage block, which is passed through on the response.
    """

    provider_name = "OpenRouter"
    default_model = ""
    default_base_url = "https://openrouter.ai/api/v1"
    api_key_env = "OPENROUTER_API_KEY"
    max_context_window = 128000

    def __init__(
        self,
        model_id: str,
        config: Optional[AdapterConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_config: Optional[CircuitBreakerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        if MODEL_ID_SEPARATOR not in model_id:
            raise ConfigurationError(
                f"model id {model_id!r} must look like 'provider/model'",
                provider=self.provider_name,
            )
        self.model_id = model_id
        self.display_name = display_name_for(model_id)
        config = dataclasses.replace(config or AdapterConfig(), model=model_id)
        super().__init__(config, retry_config, circuit_config, transport, sleep)

    def _build_request_body(self, context: List[Message], system_prompt: str) -> Dict[str, Any]:
        body = super()._build_request_body(context, system_prompt)
        body["usage"] = {"include": True}
        return body

    def _parse_response(
        self,
        data: Dict[str, Any],
        context: List[Message],
        system_prompt: str,
        reply_to: List[str],
    ) -> AIResponse:
        response = super()._parse_response(data, context, system_prompt, reply_to)
        usage = data.get("usage") or {}
        cost = usage.get("cost", usage.get("total_cost"))
        if cost is not None:
            response.cost = float(cost)
        return response
