import math
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from payout_relay.exceptions import RateLimited, ServerBusy
from payout_relay.logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding-window request ceiling per client key, kept in process memory.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        message: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = 1000,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug("Rate limiter evicted %s idle keys, %s remain", len(stale), len(self._hits))

    def _prune(self, key: str, now: float) -> List[float]:
        hits = [t for t in self._hits.get(key, []) if now - t < self.window_seconds]
        if hits:
            self._hits[key] = hits
        else:
            self._hits.pop(key, None)
        return hits

    def remaining(self, key: str) -> int:
        return max(0, self.limit - len(self._prune(key, self._clock())))

    def hit(self, key: str) -> None:
        now = self._clock()
        if len(self._hits) >= self.sweep_threshold:
            self._sweep(now)
        hits = self._prune(key, now)
        if len(hits) >= self.limit:
            retry_after = math.ceil(self.window_seconds - (now - hits[0]))
            logger.warning("Rate limit hit key=%s limit=%s window=%ss", key, self.limit, self.window_seconds)
            raise RateLimited(self.message, retry_after=max(retry_after, 1))
        hits.append(now)
        self._hits[key] = hits


class ConcurrencyGate:
    """
    Caps the number of requests inside `admit()` at once. Requests over the
    cap are refused rather than queued.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self.in_flight = 0

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[None]:
        # no await between the check and the increment
        if self.in_flight >= self.limit:
            logger.warning("Concurrency gate full in_flight=%s limit=%s", self.in_flight, self.limit)
            raise ServerBusy()
        self.in_flight += 1
        try:
            yield
        finally:
            self.in_flight -= 1
