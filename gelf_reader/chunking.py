"""GELF chunk wire format and per-message reassembly state.

Chunked datagram layout:
  [2-byte magic 0x1e 0x0f][8-byte message id][1-byte sequence][1-byte total][payload...]

A message may be split into at most 255 chunks. Chunks are placed by their
sequence index, so arrival order does not matter.
"""

import struct
from dataclasses import dataclass, field

from gelf_reader.errors import ChunkCountMismatchError, OutOfBandMessageError, ProtocolError

MAGIC_CHUNKED = b"\x1e\x0f"
CHUNK_HEADER_FORMAT = "!2s8sBB"  # magic, message id, sequence, total
CHUNK_HEADER_SIZE = struct.calcsize(CHUNK_HEADER_FORMAT)
MAX_CHUNK_SIZE = 8192
MAX_RECEIVES = 128


@dataclass(frozen=True)
class Chunk:
    message_id: bytes
    sequence: int
    total: int
    payload: bytes


def is_chunked(datagram: bytes) -> bool:
    return datagram[:2] == MAGIC_CHUNKED


def parse_chunk(datagram: bytes) -> Chunk:
    """Split a chunked datagram into its header fields and payload.

    Raises:
        ProtocolError: If the header is truncated or its counters are invalid.
    """
    if len(datagram) < CHUNK_HEADER_SIZE:
        raise ProtocolError(
            f"truncated chunk header: {len(datagram)} bytes, need {CHUNK_HEADER_SIZE}"
        )

    _, message_id, sequence, total = struct.unpack_from(CHUNK_HEADER_FORMAT, datagram)
    if total == 0:
        raise ProtocolError(f"chunk of message {message_id.hex()} declares zero chunks")
    if sequence >= total:
        raise ProtocolError(
            f"chunk sequence {sequence} out of range for {total} chunks"
        )
    return Chunk(message_id, sequence, total, datagram[CHUNK_HEADER_SIZE:])


@dataclass
class ChunkSet:
    """Chunks collected so far for a single in-flight message."""

    message_id: bytes
    total_chunks: int
    received_chunks: dict[int, bytes] = field(default_factory=dict)
    accumulated_length: int = 0

    @classmethod
    def start(cls, chunk: Chunk) -> "ChunkSet":
        chunk_set = cls(chunk.message_id, chunk.total)
        chunk_set.add(chunk)
        return chunk_set

    def add(self, chunk: Chunk):
        """Store a chunk at its sequence index. A repeated index replaces the old payload."""
        if chunk.message_id != self.message_id:
            raise OutOfBandMessageError(chunk.message_id, self.message_id)
        if chunk.total != self.total_chunks:
            raise ChunkCountMismatchError(
                f"chunk of message {chunk.message_id.hex()} declares {chunk.total} chunks, "
                f"expected {self.total_chunks}"
            )

        previous = self.received_chunks.get(chunk.sequence)
        if previous is not None:
            self.accumulated_length -= len(previous)
        self.received_chunks[chunk.sequence] = chunk.payload
        self.accumulated_length += len(chunk.payload)

    @property
    def complete(self) -> bool:
        return len(self.received_chunks) == self.total_chunks

    def assemble(self) -> bytes:
        """Concatenate stored payloads in sequence order, skipping missing indices."""
        return b"".join(
            self.received_chunks[i]
            for i in range(self.total_chunks)
            if i in self.received_chunks
        )
