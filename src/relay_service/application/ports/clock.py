from __future__ import annotations

import threading
import time
from typing import Callable, Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall-clock milliseconds, never moving backwards within the process."""

    def __init__(self, source: Callable[[], int] = time.time_ns) -> None:
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        now = self._source() // 1_000_000
        with self._lock:
            if now < self._last:
                now = self._last
            self._last = now
        return now
