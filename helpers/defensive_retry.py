#helpers/defensive_retry.py

"""
Retry with exponential backoff for Discord API calls.

Only transient faults (rate limits, 5xx, network errors) are retried; client
errors such as Forbidden or NotFound are raised on the first attempt so the
caller can interpret them.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp
import discord

from utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number (0-indexed)."""
        delay = self.base_delay * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # +/-25% so simultaneous retries spread out
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)


RETRY_CONFIGS = {
    "discord_api": RetryConfig(
        max_attempts=3, base_delay=1.0, max_delay=16.0, exponential_base=2.0
    ),
}


def is_retryable_error(error: BaseException) -> bool:
    """Determine if an error is worth retrying."""

    if isinstance(error, discord.HTTPException):
        status = getattr(error, "status", None)
        if status == 429:
            return True
        if isinstance(status, int) and 500 <= status < 600:
            return True
        return False

    if isinstance(error, aiohttp.ClientError | asyncio.TimeoutError):
        return True

    if isinstance(error, ConnectionError | OSError):
        return True

    return False


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    config_name: str = "discord_api",
    **kwargs: Any,
) -> T:
    """
    Retry an async function with exponential backoff.

    Args:
        func: The async function to retry
        *args: Arguments to pass to func
        config: Custom retry configuration
        config_name: Name of predefined config to use if config is None
        **kwargs: Keyword arguments to pass to func

    Returns:
        The result of the successful function call

    Raises:
        The first non-retryable exception, or the last exception once all
        attempts are exhausted.
    """
    if config is None:
        config = RETRY_CONFIGS.get(config_name, RETRY_CONFIGS["discord_api"])

    name = getattr(func, "__name__", repr(func))
    last_exception: BaseException | None = None

    for attempt in range(config.max_attempts):
        try:
            result = await func(*args, **kwargs)
            if attempt > 0:
                logger.info(f"Function {name} succeeded on attempt {attempt + 1}")
            return result
        except Exception as e:
            last_exception = e

            if not is_retryable_error(e):
                raise

            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} failed for "
                f"{name}: {type(e).__name__}: {e}"
            )

            if attempt < config.max_attempts - 1:
                delay = config.calculate_delay(attempt)
                logger.info(f"Retrying {name} in {delay:.2f}s...")
                await asyncio.sleep(delay)

    logger.error(
        f"All {config.max_attempts} attempts failed for {name}: "
        f"{type(last_exception).__name__}: {last_exception}"
    )
    assert last_exception is not None
    raise last_exception
