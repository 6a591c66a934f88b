"""Bounded retries with exponential backoff for blocking store calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff for one kind of store call."""

    max_attempts: int = 3
    base_delay: float = 0.2
    max_delay: float = 2.0
    timeout: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    async def run(
        self,
        operation: Callable[[], T],
        description: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Run a blocking call in a worker thread, retrying on failure.

        The last exception is re-raised once attempts are exhausted.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(operation), timeout=self.timeout
                )
            except Exception as exc:
                if attempt == self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                    description,
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                await sleep(delay)
        raise RuntimeError("RetryPolicy requires max_attempts >= 1")
