"""
Sliding-window suppression of repeated prompts.

A key seen again within the window is suppressed and its timestamp is moved
to now, so a steady stream of identical failures stays suppressed until the
stream pauses for a full window. The map is bounded: expired keys are swept
on each check and the least recently seen key is evicted at capacity.
"""

import time
from collections import OrderedDict
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class ThrottleWindow:
    def __init__(
        self,
        window_seconds: float = 5.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._last_seen: "OrderedDict[str, float]" = OrderedDict()

    def should_suppress(self, key: str) -> bool:
        """Record an occurrence of ``key`` and report whether to suppress it."""
        now = self._clock()
        self._sweep(now)

        last = self._last_seen.pop(key, None)
        self._last_seen[key] = now

        if last is not None and now - last < self.window_seconds:
            return True

        self._evict_overflow()
        return False

    def last_seen(self, key: str) -> Optional[float]:
        return self._last_seen.get(key)

    def __len__(self) -> int:
        return len(self._last_seen)

    def reset(self) -> None:
        self._last_seen.clear()

    def _sweep(self, now: float) -> None:
        # Oldest entries sit at the front.
        while self._last_seen:
            key, seen = next(iter(self._last_seen.items()))
            if now - seen < self.window_seconds:
                break
            del self._last_seen[key]

    def _evict_overflow(self) -> None:
        while len(self._last_seen) > self.max_entries:
            key, _ = self._last_seen.popitem(last=False)
            logger.debug("Throttle entry evicted", key=key)
