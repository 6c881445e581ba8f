"""Exceptions raised while receiving and decoding GELF messages.

Transport failures are not wrapped: whatever ``OSError`` the socket raises
reaches the caller unchanged.
"""


class GELFError(Exception):
    """Base class for every GELF decoding failure."""

    kind = "gelf"


class ProtocolError(GELFError):
    """Raised when a datagram sequence violates the chunking rules."""

    kind = "protocol"


class OutOfBandMessageError(ProtocolError):
    """Raised when a chunk belongs to a different message than the one being assembled."""

    kind = "out_of_band"

    def __init__(self, message_id: bytes, awaited_id: bytes):
        self.message_id = message_id
        self.awaited_id = awaited_id
        super().__init__(
            f"out-of-band message {message_id.hex()} (awaited {awaited_id.hex()})"
        )


class UnchunkedDuringAssemblyError(ProtocolError):
    """Raised when a plain datagram arrives while a chunked message is incomplete."""

    kind = "out_of_band"

    def __init__(self):
        super().__init__("out-of-band message (not chunked)")


class ChunkCountMismatchError(ProtocolError):
    kind = "chunk_count_mismatch"


class IncompleteMessageError(ProtocolError):
    """Raised when the receive cap is hit before every chunk has arrived."""

    kind = "incomplete"

    def __init__(self, received: int, total: int, attempts: int):
        self.received = received
        self.total = total
        self.attempts = attempts
        super().__init__(
            f"incomplete message: {received}/{total} chunks after {attempts} receives"
        )


class DecompressionError(GELFError):
    kind = "decompression"


class PayloadDecodeError(GELFError):
    """Raised when the payload is not a UTF-8 JSON object."""

    kind = "json"


class FieldTypeError(GELFError):
    """Raised when a string field carries a value of another JSON type."""

    kind = "field_type"

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(
            f"field {field!r} must be a string, got {type(value).__name__}"
        )
