"""Compression detection and decompression for reassembled GELF payloads.

Senders may gzip, zlib or not compress at all; nothing on the wire says
which, so the first two bytes decide.
"""

import gzip
import io
import logging
import zlib
from enum import Enum

from gelf_reader.errors import DecompressionError

logger = logging.getLogger(__name__)

MAGIC_GZIP = b"\x1f\x8b"
ZLIB_METHOD_DEFLATE = 0x08


class Algorithm(str, Enum):
    NONE = "none"
    GZIP = "gzip"
    ZLIB = "zlib"


def detect_compression(data: bytes) -> Algorithm:
    """Return the compression a payload was sent with.

    zlib has no fixed magic: the low nibble of the first byte is the method
    (8 = deflate) and the big-endian header word is a multiple of 31.
    """
    if len(data) < 2:
        return Algorithm.NONE
    if data[:2] == MAGIC_GZIP:
        return Algorithm.GZIP
    if data[0] & 0x0F == ZLIB_METHOD_DEFLATE and (data[0] * 256 + data[1]) % 31 == 0:
        return Algorithm.ZLIB
    return Algorithm.NONE


def decompress(data: bytes, algorithm: Algorithm | None = None) -> bytes:
    """Decompress ``data``, detecting the algorithm when not given.

    Raises:
        DecompressionError: If the payload looks compressed but is corrupt.
    """
    if algorithm is None:
        algorithm = detect_compression(data)

    try:
        if algorithm is Algorithm.GZIP:
            return gzip.decompress(data)
        if algorithm is Algorithm.ZLIB:
            return zlib.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecompressionError(f"{algorithm.value} payload: {exc}") from exc
    return data


def open_payload(data: bytes) -> tuple[io.BytesIO, Algorithm]:
    """Return a readable stream over the decompressed payload and the algorithm used."""
    algorithm = detect_compression(data)
    plain = decompress(data, algorithm)
    logger.debug("Payload %d bytes (%s) -> %d bytes", len(data), algorithm.value, len(plain))
    return io.BytesIO(plain), algorithm
