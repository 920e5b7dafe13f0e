"""Retry utilities for opening streams.

Provides exponential backoff with jitter for transient failures while a
stream is being opened. Once the first byte has been handed to the reader a
dropped stream is terminal and never retried.
"""

import asyncio
import logging
import random
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

from narration_engine.exceptions import TransportError
from narration_engine.streaming.transport import StreamResponse, StreamTransport

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts.
        initial_delay: Initial delay in seconds.
        max_delay: Maximum delay between retries.
        exponential_base: Base for exponential backoff.
        jitter: Whether to add random jitter.
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True


class RetryingTransport:
    """Wraps a transport and retries retryable failures while opening.

    Example:
        transport = RetryingTransport(
            HttpStreamTransport(base_url),
            config=RetryConfig(max_retries=2),
        )
    """

    def __init__(
        self,
        inner: StreamTransport,
        config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the wrapper.

        Args:
            inner: Transport to delegate to.
            config: Retry configuration.
            sleep: Coroutine used to wait between attempts.
        """
        self._inner = inner
        self._config = config or RetryConfig()
        self._sleep = sleep

    @asynccontextmanager
    async def open(
        self, endpoint: str, payload: dict[str, Any]
    ) -> AsyncIterator[StreamResponse]:
        """Open a stream, retrying retryable open failures."""
        for attempt in range(self._config.max_retries + 1):
            stack = AsyncExitStack()
            try:
                response = await stack.enter_async_context(
                    self._inner.open(endpoint, payload)
                )
            except TransportError as e:
                await stack.aclose()
                if not e.is_retryable or attempt == self._config.max_retries:
                    raise
                delay = _calculate_delay(attempt, self._config)
                logger.warning(
                    f"Opening {endpoint} failed ({e}), retry {attempt + 1}/"
                    f"{self._config.max_retries} in {delay:.2f}s"
                )
                await self._sleep(delay)
                continue

            async with stack:
                yield response
            return


def _calculate_delay(
    attempt: int,
    config: RetryConfig,
) -> float:
    """Calculate delay for the next retry attempt.

    Uses exponential backoff with optional jitter.

    Args:
        attempt: Current attempt number (0-indexed).
        config: Retry configuration.

    Returns:
        Delay in seconds.
    """
    exponential_delay = config.initial_delay * (config.exponential_base ** attempt)
    delay = min(exponential_delay, config.max_delay)

    if config.jitter:
        # Between 0 and 25% of delay
        delay += random.uniform(0, delay * 0.25)

    return delay
