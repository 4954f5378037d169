"""First-in, first-out request throttle with a minimum delay between starts."""

from __future__ import annotations

from collections import deque
import logging
import threading
import time
from typing import Callable, Deque, Optional

from ..config import OVERPASS_MIN_DELAY_S

__all__ = ["RequestThrottle"]

LOGGER = logging.getLogger(__name__)


class RequestThrottle:
    """Serialise callers in arrival order, spacing request starts by ``min_delay_s``.

    Callers are queued rather than rejected. ``clock`` and ``sleeper`` can be
    injected so tests run without real waiting.
    """

    def __init__(
        self,
        min_delay_s: float = OVERPASS_MIN_DELAY_S,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_delay_s < 0:
            raise ValueError("min_delay_s must be >= 0")
        self.min_delay_s = min_delay_s
        self._clock = clock
        self._sleeper = sleeper
        self._cond = threading.Condition()
        self._queue: Deque[int] = deque()
        self._next_ticket = 0
        self._last_start: Optional[float] = None

    def acquire(self) -> float:
        """Block until this caller may start a request; return seconds slept."""

        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            self._queue.append(ticket)
            while self._queue[0] != ticket:
                self._cond.wait()
            last_start = self._last_start

        waited = 0.0
        try:
            if last_start is not None:
                waited = max(0.0, self.min_delay_s - (self._clock() - last_start))
                if waited > 0:
                    LOGGER.debug("Throttling request for %.2fs", waited)
                    self._sleeper(waited)
        finally:
            with self._cond:
                self._last_start = self._clock()
                self._queue.popleft()
                self._cond.notify_all()
        return waited

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._queue)
