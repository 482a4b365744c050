"""
Retry utilities.

Provides a functional retry helper for awaited provider calls. Which
failures are retried is decided by a predicate, so a call can be retried on
one narrow failure class and fail fast on everything else.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

from greenlit.core.logging_config import get_logger

logger = get_logger("core.retry")

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_range: Tuple[float, float] = (0.5, 1.5)
    retry_if: Optional[Callable[[Exception], bool]] = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def should_retry(self, exc: Exception) -> bool:
        if self.retry_if is None:
            return True
        return self.retry_if(exc)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay before next retry attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds before next attempt
    """
    delay = config.base_delay * (config.exponential_base ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        delay *= random.uniform(*config.jitter_range)

    return delay


async def retry_async_call(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    **kwargs: Any
) -> T:
    """
    Retry an async function call.

    Exceptions rejected by ``config.retry_if`` propagate immediately without
    another attempt.

    Example:
        result = await retry_async_call(
            client.generate_text,
            prompt,
            config=FORBIDDEN_RETRY_CONFIG,
        )
    """
    config = config or RetryConfig()

    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not config.should_retry(e):
                raise

            if attempt >= config.max_retries:
                logger.error(
                    f"All {config.max_attempts} attempts failed. Last error: {e}"
                )
                raise

            delay = calculate_delay(attempt, config)
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            if on_retry:
                on_retry(e, attempt)
            await config.sleep(delay)

    raise RuntimeError("Retry logic failed unexpectedly")


def is_forbidden(exc: Exception) -> bool:
    """True for provider responses with HTTP 403, treated as transient rate limiting."""
    return getattr(exc, "status_code", None) == 403


# Provider 403s: three attempts in total, one second apart.
FORBIDDEN_RETRY_CONFIG = RetryConfig(
    max_retries=2,
    base_delay=1.0,
    exponential_base=1.0,
    jitter=False,
    retry_if=is_forbidden,
)
