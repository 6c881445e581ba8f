"""GELF (Graylog Extended Log Format) UDP reader."""

from gelf_reader.compression import Algorithm
from gelf_reader.errors import (
    ChunkCountMismatchError,
    DecompressionError,
    FieldTypeError,
    GELFError,
    IncompleteMessageError,
    OutOfBandMessageError,
    PayloadDecodeError,
    ProtocolError,
    UnchunkedDuringAssemblyError,
)
from gelf_reader.models import GELFMessage
from gelf_reader.reader import GELFReader

__all__ = [
    "Algorithm",
    "ChunkCountMismatchError",
    "DecompressionError",
    "FieldTypeError",
    "GELFError",
    "GELFMessage",
    "GELFReader",
    "IncompleteMessageError",
    "OutOfBandMessageError",
    "PayloadDecodeError",
    "ProtocolError",
    "UnchunkedDuringAssemblyError",
]
