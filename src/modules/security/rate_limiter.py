"""
Per-client request counting for the document routes.

A client's window opens on its first request and is replaced by a fresh one
once more than `window_seconds` have elapsed since it opened. Within a
window the first `max_requests` requests pass and the rest are refused.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_MAX_REQUESTS = 100


@dataclass
class _Window:
    started_at: float
    count: int


class RateLimiter:

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        # Route handlers run in a threadpool
        self._lock = threading.Lock()

    def check(self, key: str) -> Tuple[bool, Optional[int]]:
        """
        Count one request for `key`.
        Returns: (allowed, retry_after_seconds)
        """
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.started_at > self.window_seconds:
                self._windows[key] = _Window(started_at=now, count=1)
                return True, None

            window.count += 1
            if window.count > self.max_requests:
                retry_after = int(window.started_at + self.window_seconds - now) + 1
                return False, max(retry_after, 1)
            return True, None

    def prune(self) -> int:
        """Drop windows that have already expired."""
        now = self._clock()
        with self._lock:
            expired = [key for key, w in self._windows.items() if now - w.started_at > self.window_seconds]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)
