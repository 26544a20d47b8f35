"""Base adapter classes and shared data types."""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Awaitable, Callable

import httpx

from ..circuit import CircuitBreaker, CircuitBreakerConfig
from ..errors import (
    AdapterError,
    ConfigurationError,
    AuthenticationError,
    RateLimitError,
    InvalidRequestError,
    ServerError,
    TerminalProviderError,
    ProviderTimeoutError,
    ProviderNetworkError,
)
from ..retry import RetryConfig, retry_with_backoff
from ..tokens import estimate_tokens

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """A conversation message handed to an adapter."""

    id: str
    author_type: str  # "user" or "assistant" ("ai" is accepted as assistant)
    content: str
    tokens: Optional[int] = None

    @property
    def role(self) -> str:
        """Chat role for provider APIs."""
        return "user" if self.author_type == "user" else "assistant"

    def to_dict(self) -> Dict[str, str]:
        """Convert to a provider chat message."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def user(cls, id: str, content: str, tokens: Optional[int] = None) -> "Message":
        """Create a user message."""
        return cls(id=id, author_type="user", content=content, tokens=tokens)

    @classmethod
    def assistant(cls, id: str, content: str, tokens: Optional[int] = None) -> "Message":
        """Create an assistant message."""
        return cls(id=id, author_type="assistant", content=content, tokens=tokens)


@dataclass
class AIResponse:
    """Response from an adapter."""

    content: str
    model: str
    tokens: int
    reply_to: List[str] = field(default_factory=list)
    context_used: int = 0
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    cost: Optional[float] = None  # USD, when the provider reports it
    raw_response: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "tokens": self.tokens,
            "reply_to": list(self.reply_to),
            "context_used": self.context_used,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cost": self.cost,
        }


@dataclass
class AdapterConfig:
    """Credentials and request settings for one adapter."""

    api_key: Optional[str] = None
    api_key_env: Optional[str] = None  # Environment variable name for API key
    model: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 60.0
    max_tokens: int = 4096
    temperature: float = 0.7
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def get_api_key(self) -> Optional[str]:
        """Get API key from config or environment."""
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


class BaseAdapter(ABC):
    """Capability contract every provider adapter satisfies."""

    provider_name: str = "base"  # Prefix used in error messages
    max_context_window: int = 128000

    def __init__(self, model_name: str, config: Optional[AdapterConfig] = None):
        self.model_name = model_name
        self.config = config or AdapterConfig()

    @abstractmethod
    async def generate_response(
        self,
        context: List[Message],
        system_prompt: str,
        reply_to: Optional[List[str]] = None,
    ) -> AIResponse:
        """
        Generate a reply to the conversation.

        Args:
            context: Conversation messages, oldest first (may be empty)
            system_prompt: Highest-priority instruction for the model
            reply_to: Message ids this reply answers

        Returns:
            AIResponse with content and token usage
        """
        pass

    def check_context_window(self, messages: List[Message]) -> int:
        """Sum explicit token counts, estimating messages that have none."""
        return sum(
            msg.tokens if msg.tokens is not None else self.estimate_tokens(msg.content)
            for msg in messages
        )

    def estimate_tokens(self, text: str) -> int:
        return estimate_tokens(text)

    def get_model_name(self) -> str:
        return self.model_name

    def get_max_context_window(self) -> int:
        return self.max_context_window

    def format_messages(self, messages: List[Message]) -> List[Dict[str, str]]:
        """Convert messages to provider chat format."""
        return [m.to_dict() for m in messages]

    async def close_async(self) -> None:
        """Release any network resources."""
        pass

    async def __aenter__(self) -> "BaseAdapter":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close_async()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model_name={self.model_name!r})"


class HTTPAdapter(BaseAdapter):
    """
    Adapter calling a provider's HTTP API.

    Every call runs as circuit breaker -> retry with backoff -> provider
    request, so a fully exhausted retry sequence counts as a single failure
    against the breaker.
    """

    default_model: str = ""
    default_base_url: str = ""
    api_key_env: Optional[str] = None

    def __init__(
        self,
        model_name: str,
        config: Optional[AdapterConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_config: Optional[CircuitBreakerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        super().__init__(model_name, config)
        env_name = self.config.api_key_env or self.api_key_env
        self.api_key = self.config.api_key or (os.environ.get(env_name) if env_name else None)
        if not self.api_key:
            raise ConfigurationError(
                f"API key not found. Set {env_name} or provide api_key in config.",
                provider=self.provider_name,
            )

        self.model = self.config.model or self.default_model
        if not self.model:
            raise ConfigurationError("model is not configured", provider=self.provider_name)

        self.base_url = self.config.base_url or self.default_base_url
        if not self.base_url:
            raise ConfigurationError("base URL is not configured", provider=self.provider_name)

        self.retry_config = retry_config or RetryConfig()
        self.circuit_breaker = CircuitBreaker(
            self.provider_name,
            circuit_config or CircuitBreakerConfig(exclude_exceptions=(ConfigurationError,)),
        )
        self._transport = transport
        self._sleep = sleep or asyncio.sleep
        self._async_client: Optional[httpx.AsyncClient] = None

    @abstractmethod
    def _get_headers(self) -> Dict[str, str]:
        """Get request headers."""
        pass

    @abstractmethod
    async def _complete(
        self,
        context: List[Message],
        system_prompt: str,
        reply_to: List[str],
    ) -> AIResponse:
        """Make one provider request, without retry or circuit breaking."""
        pass

    @property
    def async_client(self) -> httpx.AsyncClient:
        """Get or create asynchronous client."""
        if self._async_client is None:
            headers = self._get_headers()
            headers.update(self.config.extra_headers)
            self._async_client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._async_client

    async def generate_response(
        self,
        context: List[Message],
        system_prompt: str,
        reply_to: Optional[List[str]] = None,
    ) -> AIResponse:
        try:
            return await self.circuit_breaker.call_async(
                retry_with_backoff,
                self._complete,
                list(context),
                system_prompt,
                list(reply_to or []),
                config=self.retry_config,
                sleep=self._sleep,
            )
        except AdapterError as e:
            logger.error("%s request failed: %s", self.model_name, e)
            raise
        except Exception as e:
            logger.error("%s request failed: %s", self.model_name, e)
            raise TerminalProviderError(str(e) or type(e).__name__, provider=self.provider_name) from e

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body and return the decoded JSON response."""
        try:
            response = await self.async_client.post(path, json=body)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"request timeout: {e}", provider=self.provider_name) from e
        except httpx.NetworkError as e:
            raise ProviderNetworkError(f"network error: {e}", provider=self.provider_name) from e

        if response.status_code != 200:
            self._handle_error(response)

        try:
            return response.json()
        except ValueError as e:
            raise TerminalProviderError(
                f"invalid JSON in response: {e}",
                provider=self.provider_name,
                status_code=response.status_code,
                response=response,
            ) from e

    def _handle_error(self, response: httpx.Response) -> None:
        """Handle API error responses."""
        status_code = response.status_code

        try:
            error_data = response.json()
            error_message = error_data.get("error", {}).get("message", response.text)
        except (ValueError, AttributeError):
            error_message = response.text

        if status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed: {error_message}",
                provider=self.provider_name,
                status_code=status_code,
                response=response,
            )
        elif status_code == 429:
            retry_after = response.headers.get("retry-after")
            try:
                retry_after_seconds = float(retry_after) if retry_after else None
            except ValueError:
                retry_after_seconds = None
            raise RateLimitError(
                f"Rate limit exceeded: {error_message}",
                provider=self.provider_name,
                retry_after=retry_after_seconds,
                status_code=status_code,
                response=response,
            )
        elif status_code == 400:
            raise InvalidRequestError(
                f"Invalid request: {error_message}",
                provider=self.provider_name,
                status_code=status_code,
                response=response,
            )
        elif status_code >= 500:
            raise ServerError(
                f"Server error: {error_message}",
                provider=self.provider_name,
                status_code=status_code,
                response=response,
            )
        else:
            raise TerminalProviderError(
                f"Unexpected status ({status_code}): {error_message}",
                provider=self.provider_name,
                status_code=status_code,
                response=response,
            )

    def _build_response(
        self,
        content: str,
        context: List[Message],
        system_prompt: str,
        reply_to: List[str],
        input_tokens: Optional[int] = None,
        output_tokens: Optional[int] = None,
        total_tokens: Optional[int] = None,
        cost: Optional[float] = None,
        raw_response: Optional[Any] = None,
    ) -> AIResponse:
        """Assemble an AIResponse, estimating usage the provider did not report."""
        if total_tokens is None:
            if input_tokens is None and output_tokens is None:
                input_tokens = self.check_context_window(context) + self.estimate_tokens(system_prompt)
                output_tokens = self.estimate_tokens(content)
            total_tokens = (input_tokens or 0) + (output_tokens or 0)

        return AIResponse(
            content=content,
            model=self.model_name,
            tokens=total_tokens,
            reply_to=reply_to,
            context_used=total_tokens,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost,
            raw_response=raw_response,
        )

    async def close_async(self) -> None:
        """Close asynchronous client."""
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None
