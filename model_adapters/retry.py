"""Exponential backoff retry for async provider calls."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, TypeVar, Optional, Any

import httpx

from .errors import AdapterError

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_ERRORS = ("rate_limit", "timeout", "network", "econnreset", "etimedout")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    initial_delay: float = 1.0  # Seconds before the first retry
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.0  # Random jitter factor (0-1)
    retryable_errors: tuple = DEFAULT_RETRYABLE_ERRORS
    honor_retry_after: bool = False  # Let a provider retry-after hint lengthen the delay


class RetryState:
    """Tracks retry state across attempts."""

    def __init__(self, config: RetryConfig):
        self.config = config
        self.attempt = 0
        self.last_exception: Optional[Exception] = None
        self.total_delay = 0.0

    @property
    def invocations(self) -> int:
        """Number of times the operation has been started so far."""
        return self.attempt + 1

    def should_retry(self, exception: Exception) -> bool:
        """Determine if we should retry based on the error classification."""
        if self.attempt >= self.config.max_retries:
            return False
        return is_retryable_error(exception, self.config.retryable_errors)

    def get_delay(self) -> float:
        """Calculate the delay before the next attempt."""
        exponent = max(0, self.attempt - 1)
        delay = self.config.initial_delay * (self.config.backoff_multiplier ** exponent)
        delay = min(delay, self.config.max_delay)

        if self.config.jitter:
            jitter_range = delay * self.config.jitter
            delay = max(0.0, delay + random.uniform(-jitter_range, jitter_range))

        retry_after = extract_retry_after(self.last_exception) if self.config.honor_retry_after else None
        if retry_after:
            delay = max(delay, min(retry_after, self.config.max_delay))

        self.total_delay += delay
        return delay

    def increment(self, exception: Exception) -> None:
        """Increment attempt counter and store exception."""
        self.attempt += 1
        self.last_exception = exception


def extract_retry_after(exception: Optional[Exception]) -> Optional[float]:
    """Extract a retry-after hint, in seconds, from an exception."""
    if exception is None:
        return None

    retry_after = getattr(exception, "retry_after", None)
    if retry_after is not None:
        return float(retry_after)

    response = getattr(exception, "response", None)
    headers = getattr(response, "headers", None)
    if headers is not None:
        value = headers.get("retry-after")
        if value:
            try:
                return float(value)
            except ValueError:
                pass

    return None


def is_rate_limit_error(exception: Exception) -> bool:
    """Detect if exception is a rate limit error."""
    response = getattr(exception, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True

    message = str(exception).lower()
    rate_limit_indicators = ["rate limit", "ratelimit", "too many requests", "quota exceeded"]
    return any(indicator in message for indicator in rate_limit_indicators)


def classify_error(exception: Exception) -> Optional[str]:
    """Return the error tag for ``exception``, or None when it is unclassified."""
    tag = getattr(exception, "tag", None)
    if isinstance(tag, str):
        return tag
    if isinstance(exception, AdapterError):
        return None

    if isinstance(exception, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return "timeout"
    if isinstance(exception, (httpx.NetworkError, ConnectionError)):
        return "network"
    if is_rate_limit_error(exception):
        return "rate_limit"
    return None


def is_retryable_error(exception: Exception, retryable_errors: Iterable[str]) -> bool:
    """Check an exception against a set of retryable error tags.

    Our own errors are matched by tag only. Foreign exceptions fall back to a
    substring match of each tag against the message and class name.
    """
    wanted = [t.lower() for t in retryable_errors]
    tag = classify_error(exception)
    if tag is not None and tag.lower() in wanted:
        return True
    if isinstance(exception, AdapterError):
        return False

    message = str(exception).lower()
    name = type(exception).__name__.lower()
    return any(t in message or t in name for t in wanted)


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> T:
    """
    Execute an async function with retry logic.

    The last error is re-raised unchanged once retries are exhausted, and
    non-retryable errors are re-raised after the first attempt.

    Args:
        func: Async function to execute
        *args: Positional arguments for func
        config: Retry configuration
        on_retry: Callback called before each retry (attempt, exception, delay)
        sleep: Awaitable used to wait out the backoff delay
        **kwargs: Keyword arguments for func

    Returns:
        Result from func
    """
    if config is None:
        config = RetryConfig()

    state = RetryState(config)

    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not state.should_retry(e):
                if state.attempt >= config.max_retries:
                    logger.error("All %d attempts failed: %s", state.invocations, e)
                else:
                    logger.warning("Non-retryable error encountered: %s", e)
                raise

            state.increment(e)
            delay = state.get_delay()

            logger.warning(
                "Attempt %d/%d failed. Retrying in %.2fs: %s",
                state.attempt,
                config.max_retries + 1,
                delay,
                e,
            )

            if on_retry:
                on_retry(state.attempt, e, delay)

            await sleep(delay)
