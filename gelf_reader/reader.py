"""Receive GELF datagrams and decode them into messages."""

import json
import logging
import socket
import threading

from gelf_reader.chunking import MAX_CHUNK_SIZE, MAX_RECEIVES, ChunkSet, is_chunked, parse_chunk
from gelf_reader.compression import Algorithm, open_payload
from gelf_reader.errors import IncompleteMessageError, PayloadDecodeError, UnchunkedDuringAssemblyError
from gelf_reader.mapper import map_message
from gelf_reader.models import GELFMessage

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


def decode_json_object(data: bytes) -> dict:
    """Decode the first JSON value in ``data``, ignoring anything after it.

    Raises:
        PayloadDecodeError: If the bytes are not UTF-8 or do not start with a JSON object.
    """
    try:
        text = data.decode("utf-8").lstrip()
        value, _ = _decoder.raw_decode(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PayloadDecodeError(f"invalid JSON payload: {exc}") from exc
    except RecursionError as exc:
        raise PayloadDecodeError("JSON payload nested too deeply") from exc

    if not isinstance(value, dict):
        raise PayloadDecodeError(f"expected JSON object, got {type(value).__name__}")
    return value


def format_address(address) -> str:
    host, port = address[0], address[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class GELFReader:
    """Reads one logical GELF message at a time from a datagram transport.

    ``transport`` needs ``recv(bufsize)`` and ``getsockname()``; a bound UDP
    socket fits. Only one chunked message is tracked at a time, so every read
    holds an internal lock for its whole duration.
    """

    def __init__(self, transport, max_chunk_size: int = MAX_CHUNK_SIZE,
                 max_receives: int = MAX_RECEIVES):
        if max_receives < 1:
            raise ValueError(f"max_receives must be at least 1, got {max_receives}")
        self._transport = transport
        self._max_chunk_size = max_chunk_size
        self._max_receives = max_receives
        self._lock = threading.Lock()
        self.last_chunk_count = 0
        self.last_compression = Algorithm.NONE

    @classmethod
    def listen(cls, host: str, port: int, receive_timeout: float | None = None,
               **kwargs) -> "GELFReader":
        """Bind a UDP socket to ``host:port`` and return a reader that owns it."""
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(receive_timeout)
        reader = cls(sock, **kwargs)
        logger.info("GELF reader listening on %s", reader.addr)
        return reader

    @property
    def transport(self):
        return self._transport

    @property
    def addr(self) -> str:
        return format_address(self._transport.getsockname())

    def close(self):
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def read_payload(self) -> bytes:
        """Receive one complete message and return its decompressed bytes."""
        with self._lock:
            return self._read_payload_locked()

    def read_to_map(self) -> dict:
        with self._lock:
            return decode_json_object(self._read_payload_locked())

    def read_message(self) -> GELFMessage:
        with self._lock:
            return self._read_message_locked()

    def readinto(self, buffer) -> int:
        """Copy the next message's text into ``buffer``.

        Text longer than the buffer is cut off; the remainder is lost.
        """
        with self._lock:
            data = self._read_message_locked().text.encode("utf-8")
        view = memoryview(buffer).cast("B")
        n = min(len(view), len(data))
        view[:n] = data[:n]
        return n

    def read(self, size: int = -1) -> bytes:
        with self._lock:
            data = self._read_message_locked().text.encode("utf-8")
        return data if size < 0 else data[:size]

    def _read_message_locked(self) -> GELFMessage:
        return map_message(decode_json_object(self._read_payload_locked()))

    def _read_payload_locked(self) -> bytes:
        raw = self._receive_datagrams()
        stream, self.last_compression = open_payload(raw)
        return stream.read()

    def _receive_datagrams(self) -> bytes:
        """Receive datagrams until one whole message is available; return it raw."""
        chunk_set = None

        for _ in range(self._max_receives):
            datagram = self._transport.recv(self._max_chunk_size)

            if not is_chunked(datagram):
                if chunk_set is not None:
                    raise UnchunkedDuringAssemblyError()
                self.last_chunk_count = 0
                return datagram

            chunk = parse_chunk(datagram)
            if chunk_set is None:
                chunk_set = ChunkSet.start(chunk)
            else:
                chunk_set.add(chunk)
            logger.debug(
                "Chunk %d/%d of message %s (%d bytes)",
                chunk.sequence + 1, chunk.total, chunk.message_id.hex(), len(chunk.payload),
            )

            if chunk_set.complete:
                self.last_chunk_count = chunk_set.total_chunks
                return chunk_set.assemble()

        raise IncompleteMessageError(
            len(chunk_set.received_chunks), chunk_set.total_chunks, self._max_receives,
        )
