"""Thread-safe counters for the GELF receiver."""

import threading
import time
from collections import Counter


class Metrics:
    def __init__(self):
        self._lock = threading.Lock()
        self._total_messages = 0
        self._chunked = 0
        self._unchunked = 0
        self._severities: Counter = Counter()
        self._compression: Counter = Counter()
        self._errors: Counter = Counter()
        self._start_time = time.monotonic()

    def record_message(self, severity: str, chunk_count: int, compression: str):
        """Count one decoded message. ``chunk_count`` is 0 for a single datagram."""
        with self._lock:
            self._total_messages += 1
            self._severities[severity] += 1
            self._compression[compression] += 1
            if chunk_count:
                self._chunked += 1
            else:
                self._unchunked += 1

    def record_error(self, kind: str):
        with self._lock:
            self._errors[kind] += 1

    def snapshot(self) -> dict:
        with self._lock:
            elapsed = time.monotonic() - self._start_time
            total = self._total_messages
            snap = {
                "total_messages": total,
                "chunked_messages": self._chunked,
                "unchunked_messages": self._unchunked,
                "severity_distribution": dict(self._severities),
                "compression_distribution": dict(self._compression),
                "errors": dict(self._errors),
                "total_errors": sum(self._errors.values()),
            }

        snap["elapsed_seconds"] = round(elapsed, 2)
        snap["messages_per_second"] = round(total / elapsed, 2) if elapsed > 0 else 0.0
        return snap
