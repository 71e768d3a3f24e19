"""Fixed-interval pacing for outbound API requests."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .config import DEFAULT_DELAY_BETWEEN_REQUESTS

LOGGER = logging.getLogger(__name__)


class RateLimiter:
    """Keeps at least ``delay`` seconds between two granted request slots."""

    def __init__(
        self,
        delay: float = DEFAULT_DELAY_BETWEEN_REQUESTS,
        *,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.delay = delay
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._last_request: Optional[float] = None

    def wait_for_slot(self) -> float:
        """Blocks until the next request may be sent and returns the time slept."""

        waited = 0.0
        if self._last_request is not None:
            elapsed = self._clock() - self._last_request
            if elapsed < self.delay:
                waited = self.delay - elapsed
                LOGGER.debug("Waiting %.3f seconds before next request", waited)
                self._sleep(waited)
        self._last_request = self._clock()
        return waited
