"""
model-adapters - Resilient adapters over multiple AI completion providers.

This package provides a uniform calling convention for AI providers with:
- Lazily created, cached adapters looked up by alias or "provider/model" id
- A circuit breaker per adapter to isolate a failing provider
- Exponential backoff retries for rate limits, timeouts and network resets
- Token estimation and context-window accounting

Basic usage:
    from model_adapters import AdapterRegistry, RegistryConfig, Message

    registry = AdapterRegistry(RegistryConfig.from_env())
    adapter = registry.get_adapter("anthropic/claude-3.5-sonnet")
    response = await adapter.generate_response(
        [Message.user("m1", "Hello, how are you?")],
        system_prompt="You are a helpful assistant.",
    )
    print(response.content, response.tokens)

Using the building blocks directly:
    from model_adapters import CircuitBreaker, RetryConfig, retry_with_backoff

    breaker = CircuitBreaker("my_service")
    result = await breaker.call_async(
        retry_with_backoff, my_call, config=RetryConfig(max_retries=3)
    )
"""

__version__ = "0.1.0"

# Registry
from .registry import AdapterRegistry
from .config import RegistryConfig

# Retry module
from .retry import (
    RetryConfig,
    RetryState,
    retry_with_backoff,
    classify_error,
    is_retryable_error,
    is_rate_limit_error,
    extract_retry_after,
)

# Circuit breaker module
from .circuit import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)

# Token estimation
from .tokens import estimate_tokens

# Errors
from .errors import (
    AdapterError,
    ConfigurationError,
    TransientProviderError,
    RateLimitError,
    ProviderTimeoutError,
    ProviderNetworkError,
    TerminalProviderError,
    AuthenticationError,
    InvalidRequestError,
    ServerError,
    CircuitOpenError,
    UnimplementedError,
)

# Adapters
from .adapters import (
    BaseAdapter,
    HTTPAdapter,
    AdapterConfig,
    AIResponse,
    Message,
    OpenAIAdapter,
    GrokAdapter,
    AnthropicAdapter,
    OpenRouterAdapter,
    CursorAdapter,
)

__all__ = [
    # Version
    "__version__",
    # Registry
    "AdapterRegistry",
    "RegistryConfig",
    # Retry
    "RetryConfig",
    "RetryState",
    "retry_with_backoff",
    "classify_error",
    "is_retryable_error",
    "is_rate_limit_error",
    "extract_retry_after",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    # Tokens
    "estimate_tokens",
    # Errors
    "AdapterError",
    "ConfigurationError",
    "TransientProviderError",
    "RateLimitError",
    "ProviderTimeoutError",
    "ProviderNetworkError",
    "TerminalProviderError",
    "AuthenticationError",
    "InvalidRequestError",
    "ServerError",
    "CircuitOpenError",
    "UnimplementedError",
    # Adapters
    "BaseAdapter",
    "HTTPAdapter",
    "AdapterConfig",
    "AIResponse",
    "Message",
    "OpenAIAdapter",
    "GrokAdapter",
    "AnthropicAdapter",
    "OpenRouterAdapter",
    "CursorAdapter",
]
