"""
Retry Utilities for Completion Service Calls.

The Auto strategy selector may consult an external completion service.
Those calls go through the @retry decorator defined here, which applies
exponential backoff with jitter:

    ┌──────────────────────┐
    │  CompletionService   │──→  @retry decorator
    │  (Ollama, custom)    │     (exponential backoff + jitter)
    └──────────────────────┘

Backoff Strategy
----------------
Delay grows as ``base_delay * (exponential_base ^ attempt)``, capped at
max_delay, plus 0-25% random jitter:

    Attempt 1: 0.5s  (+ jitter)
    Attempt 2: 1.0s  (+ jitter)

The selector bounds the whole call with its own analysis budget;
completion_retry builds a decorator with short delays for that case.

Usage
-----
    @retry(max_attempts=3, retryable_exceptions=(CompletionError,))
    def complete(prompt: str) -> str:
        ...
"""

import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

from chunkforge.core.exceptions import RetryError
from chunkforge.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[BaseException], ...] = (Exception,)
    on_retry: Optional[Callable[[BaseException, int], None]] = None


def calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    """Calculate delay for next retry attempt."""
    delay = min(base_delay * (exponential_base**attempt), max_delay)

    if jitter:
        delay += delay * 0.25 * random.random()

    return delay


def _handle_failed_attempt(
    exception: BaseException,
    attempt: int,
    config: RetryConfig,
    func_name: str,
) -> None:
    """
    Log a failed attempt and sleep before the next one.

    Args:
        exception: Exception that triggered the retry
        attempt: Current attempt number (0-based)
        config: Retry settings
        func_name: Name of the function being retried
    """
    if attempt >= config.max_attempts - 1:
        logger.error(
            f"All {config.max_attempts} attempts failed",
            error=str(exception),
            function=func_name,
        )
        return

    delay = calculate_delay(
        attempt,
        config.base_delay,
        config.max_delay,
        config.exponential_base,
        config.jitter,
    )
    logger.warning(
        f"Attempt {attempt + 1}/{config.max_attempts} failed, "
        f"retrying in {delay:.2f}s",
        error=str(exception),
        function=func_name,
    )

    if config.on_retry:
        config.on_retry(exception, attempt + 1)

    time.sleep(delay)


def _execute_with_retry(
    func: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    config: RetryConfig,
) -> Any:
    """
    Execute a function with retry logic.

    Returns:
        Function return value

    Raises:
        RetryError: If all attempts fail
    """
    last_exception: Optional[BaseException] = None
    for attempt in range(config.max_attempts):
        try:
            return func(*args, **kwargs)
        except config.retryable_exceptions as e:
            last_exception = e
            _handle_failed_attempt(e, attempt, config, func.__name__)

    raise RetryError(
        f"Failed after {config.max_attempts} attempts: {last_exception}",
        attempts=config.max_attempts,
        last_exception=last_exception,
    ) from last_exception


def retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
    on_retry: Optional[Callable[[BaseException, int], None]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including first try)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential backoff
        jitter: Add random jitter to delays
        retryable_exceptions: Exception types to retry on
        on_retry: Callback(exception, attempt) called before each retry

    Example:
        @retry(max_attempts=3, base_delay=1.0)
        def call_api():
            return requests.get("http://localhost:11434/api/tags")
    """
    assert max_attempts >= 1, "max_attempts must be at least 1"

    config = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        retryable_exceptions=retryable_exceptions or (Exception,),
        on_retry=on_retry,
    )

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return _execute_with_retry(func, args, kwargs, config)

        return wrapper

    return decorator


def completion_retry(
    max_attempts: int = 2,
    retryable_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Short backoff for completion calls (delays 0.5s, 1s, capped at 2s).

    Completion calls run inside the selector's analysis budget, so the
    delays stay small.
    """
    return retry(
        max_attempts=max_attempts,
        base_delay=0.5,
        max_delay=2.0,
        exponential_base=2.0,
        jitter=True,
        retryable_exceptions=retryable_exceptions,
    )
