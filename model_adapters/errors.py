"""Exception hierarchy shared by adapters, retry, and circuit breaker."""

from typing import Optional, Any


class AdapterError(Exception):
    """Base exception for adapter errors.

    When ``provider`` is given the message is prefixed with
    ``"<provider> API error: "`` so callers always see where a failure came from.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response: Optional[Any] = None,
    ):
        if provider:
            message = f"{provider} API error: {message}"
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.response = response


class ConfigurationError(AdapterError):
    """Raised when a credential, model, or endpoint is missing."""

    pass


class TransientProviderError(AdapterError):
    """A provider failure that may succeed if retried."""

    tag: str = "transient"


class RateLimitError(TransientProviderError):
    """Raised when rate limit is hit."""

    tag = "rate_limit"

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        retry_after: Optional[float] = None,
        status_code: Optional[int] = None,
        response: Optional[Any] = None,
    ):
        super().__init__(message, provider, status_code, response)
        self.retry_after = retry_after


class ProviderTimeoutError(TransientProviderError):
    """Raised when the provider did not answer in time."""

    tag = "timeout"


class ProviderNetworkError(TransientProviderError):
    """Raised when the connection was refused or reset."""

    tag = "network"


class TerminalProviderError(AdapterError):
    """A provider failure that retrying will not fix."""

    pass


class AuthenticationError(TerminalProviderError):
    """Raised when authentication fails."""

    pass


class InvalidRequestError(TerminalProviderError):
    """Raised when request is invalid."""

    pass


class ServerError(TerminalProviderError):
    """Raised when server returns an error."""

    pass


class CircuitOpenError(AdapterError):
    """Raised when circuit is open and request is rejected."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        remaining_timeout: float = 0,
    ):
        super().__init__(message, provider)
        self.remaining_timeout = remaining_timeout


class UnimplementedError(AdapterError):
    """Raised by adapters whose provider API is not implemented yet."""

    pass
