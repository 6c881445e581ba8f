"""Shared pytest fixtures and helpers for the GELF reader test suite."""

import json
import struct

import pytest

MAGIC_CHUNKED = b"\x1e\x0f"

SAMPLE = {
    "version": "1.1",
    "host": "h1",
    "short_message": "boom",
    "timestamp": 1400000000.5,
    "level": 3,
    "_user": "alice",
}


class ScriptedTransport:
    """In-memory stand-in for a bound UDP socket that replays queued datagrams."""

    def __init__(self, datagrams=(), address=("127.0.0.1", 12201)):
        self._datagrams = list(datagrams)
        self._address = address
        self.recv_sizes: list[int] = []
        self.closed = False

    def feed(self, *datagrams: bytes):
        self._datagrams.extend(datagrams)

    def recv(self, bufsize: int) -> bytes:
        self.recv_sizes.append(bufsize)
        if not self._datagrams:
            raise TimeoutError("no more datagrams")
        return self._datagrams.pop(0)[:bufsize]

    def getsockname(self):
        return self._address

    def close(self):
        self.closed = True

    @property
    def remaining(self) -> int:
        return len(self._datagrams)


def encode(payload: dict) -> bytes:
    return json.dumps(payload).encode("utf-8")


def make_chunk(message_id: bytes, sequence: int, total: int, data: bytes) -> bytes:
    return MAGIC_CHUNKED + struct.pack("!8sBB", message_id, sequence, total) + data


def make_chunks(data: bytes, chunk_size: int, message_id: bytes = b"msgid001") -> list[bytes]:
    """Split ``data`` into chunk datagrams carrying ``chunk_size`` payload bytes each."""
    pieces = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]
    return [make_chunk(message_id, seq, len(pieces), piece) for seq, piece in enumerate(pieces)]


@pytest.fixture()
def sample_payload() -> dict:
    return dict(SAMPLE)


@pytest.fixture()
def transport() -> ScriptedTransport:
    return ScriptedTransport()
