"""In-memory ring buffer of recent decode failures."""

import threading
import time
from collections import deque


class ErrorTracker:
    def __init__(self, max_size: int = 100):
        self._errors: deque[dict] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def add(self, error: Exception):
        """Record a failure, evicting the oldest once full."""
        entry = {
            "kind": getattr(error, "kind", type(error).__name__),
            "error": str(error),
            "timestamp": time.time(),
        }
        with self._lock:
            self._errors.append(entry)

    def get_recent(self, n: int = 10) -> list[dict]:
        if n <= 0:
            return []
        with self._lock:
            return list(self._errors)[-n:]

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._errors)
