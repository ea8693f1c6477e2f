"""
Retry policy — bounded attempts with exponential backoff.

Attempt 0 runs immediately. Attempt k (k >= 1) waits
``base_delay * 2 ** (k - 1)`` seconds first, optionally capped by
``max_delay``. There is no jitter: one interactive client talks to one
upstream, and predictable delays keep the UI's retry timing honest.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, and how long to wait in between."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (0-based)."""
        if attempt <= 0:
            return 0.0
        delay = self.base_delay * (2 ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def attempts(self, sleep: Callable[[float], None] = time.sleep) -> Iterator[int]:
        """Yield attempt numbers, sleeping the backoff delay before each retry.

        The caller breaks out of the loop on success::

            for attempt in policy.attempts():
                try:
                    return do_work()
                except TransientError:
                    continue
        """
        for attempt in range(self.max_attempts):
            delay = self.delay_for(attempt)
            if delay > 0:
                logger.debug(
                    "Retry attempt %d/%d in %.1fs",
                    attempt + 1,
                    self.max_attempts,
                    delay,
                )
                sleep(delay)
            yield attempt
