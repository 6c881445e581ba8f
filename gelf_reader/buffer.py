"""Batched JSON-lines writer for decoded GELF messages."""

import json
import logging
import os
import threading
import time

from gelf_reader.models import GELFMessage

logger = logging.getLogger(__name__)

MAX_ROTATED_FILES = 10


class MessageWriter:
    """Appends messages to ``log_dir/log_filename`` as one JSON object per line.

    Messages are held in memory until ``flush_count`` accumulate or
    ``flush_timeout_sec`` passes, whichever comes first.
    """

    def __init__(self, log_dir: str, log_filename: str, flush_count: int, flush_timeout_sec: float,
                 max_log_size_mb: float = 100):
        self._path = os.path.join(log_dir, log_filename)
        self._flush_count = flush_count
        self._flush_timeout_sec = flush_timeout_sec
        self._max_log_size_bytes = int(max_log_size_mb * 1024 * 1024)

        self._pending: list[str] = []
        self._lock = threading.Lock()
        self._last_flush = time.monotonic()
        self._closed = threading.Event()

        os.makedirs(log_dir, exist_ok=True)

        self._timer = threading.Thread(target=self._timed_flush, daemon=True)
        self._timer.start()

    @property
    def path(self) -> str:
        return self._path

    @staticmethod
    def _encode(message: GELFMessage) -> str:
        return json.dumps(message.to_dict(), default=str)

    def append(self, message: GELFMessage):
        with self._lock:
            self._pending.append(self._encode(message))
            if len(self._pending) >= self._flush_count:
                self._write_pending()

    def write_immediate(self, message: GELFMessage):
        """Write one message straight to disk, after anything already pending."""
        with self._lock:
            self._pending.append(self._encode(message))
            self._write_pending()

    def flush(self):
        with self._lock:
            self._write_pending()

    def close(self):
        self._closed.set()
        self._timer.join(timeout=5)
        self.flush()
        logger.info("MessageWriter closed (%s)", self._path)

    def _write_pending(self):
        # Caller holds self._lock.
        if not self._pending:
            return

        if os.path.exists(self._path) and os.path.getsize(self._path) >= self._max_log_size_bytes:
            self._rotate()

        lines, self._pending = self._pending, []
        self._last_flush = time.monotonic()

        with open(self._path, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

        logger.debug("Wrote %d messages to %s", len(lines), self._path)

    def _rotate(self):
        """Shift gelf.log.N to gelf.log.N+1 (dropping the oldest), then gelf.log to gelf.log.1."""
        for i in range(MAX_ROTATED_FILES, 1, -1):
            older = f"{self._path}.{i - 1}"
            if os.path.exists(older):
                os.replace(older, f"{self._path}.{i}")

        os.replace(self._path, f"{self._path}.1")
        logger.info("Rotated %s", self._path)

    def _timed_flush(self):
        while not self._closed.wait(timeout=max(0.05, min(1.0, self._flush_timeout_sec))):
            with self._lock:
                if self._pending and time.monotonic() - self._last_flush >= self._flush_timeout_sec:
                    self._write_pending()
