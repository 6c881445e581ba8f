"""GELF UDP server — receives, decodes and persists GELF messages."""

import logging
import socket
import threading

from gelf_reader.buffer import MessageWriter
from gelf_reader.config import Config
from gelf_reader.error_tracker import ErrorTracker
from gelf_reader.errors import GELFError
from gelf_reader.metrics import Metrics
from gelf_reader.models import GELFMessage
from gelf_reader.reader import GELFReader, format_address

logger = logging.getLogger(__name__)

# Syslog levels 0-3: emergency, alert, critical, error.
IMMEDIATE_WRITE_LEVEL = 3


class GELFUDPServer:
    def __init__(self, config: Config, shutdown_event: threading.Event):
        self._config = config
        self._shutdown = shutdown_event
        self._sock = None
        self._reader = None
        self.server_address = None
        self.metrics = Metrics()
        self.error_tracker = ErrorTracker(config.max_errors)
        self._writer = MessageWriter(
            config.log_dir, config.log_filename,
            config.flush_count, config.flush_timeout_sec,
        )

    def start(self):
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 4 * 1024 * 1024)
        self._sock.settimeout(self._config.receive_timeout)
        self._sock.bind((self._config.host, self._config.port))
        self._reader = GELFReader(
            self._sock,
            max_chunk_size=self._config.max_chunk_size,
            max_receives=self._config.max_receives,
        )

        self.server_address = self._sock.getsockname()
        logger.info("GELF server listening on %s", format_address(self.server_address))

        while not self._shutdown.is_set():
            try:
                message = self._reader.read_message()
            except socket.timeout:
                continue
            except GELFError as exc:
                logger.warning("Dropped GELF message (%s): %s", exc.kind, exc)
                self.metrics.record_error(exc.kind)
                self.error_tracker.add(exc)
                continue
            except OSError:
                if self._shutdown.is_set():
                    break
                raise

            self._handle(message)

    def _handle(self, message: GELFMessage):
        self.metrics.record_message(
            message.severity,
            self._reader.last_chunk_count,
            self._reader.last_compression.value,
        )

        if message.level <= IMMEDIATE_WRITE_LEVEL:
            self._writer.write_immediate(message)
        else:
            self._writer.append(message)

        logger.debug("Received from %s: %s", message.host or "?", message.short)

    def stop(self):
        self._shutdown.set()
        if self._sock:
            self._sock.close()
            self._sock = None
        self._writer.close()
        logger.info("GELF server stopped. Stats: %s", self.metrics.snapshot())

    @property
    def received_count(self) -> int:
        return self.metrics.snapshot()["total_messages"]
