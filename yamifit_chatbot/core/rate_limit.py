import logging
import threading
import time
from typing import Callable, Dict, List

from yamifit_chatbot.core.exceptions import TooManyRequests

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-size sliding window of hit timestamps per client key.
    Process-local: each worker enforces its own budget.
    """

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self.hits: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> None:
        now = self.clock()
        window_start = now - self.window_seconds
        with self._lock:
            timestamps = [ts for ts in self.hits.get(key, []) if ts > window_start]
            if len(timestamps) >= self.limit:
                self.hits[key] = timestamps
                logger.warning(f"Rate limit exceeded for {key} ({self.limit} per {self.window_seconds}s)")
                raise TooManyRequests()
            timestamps.append(now)
            self.hits[key] = timestamps

    def reset(self) -> None:
        with self._lock:
            self.hits.clear()
