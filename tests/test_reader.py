"""Tests for gelf_reader/reader.py — reassembly, decoding and the reader surface."""

import gzip
import random
import socket
import threading
import zlib

import pytest

from conftest import ScriptedTransport, encode, make_chunk, make_chunks
from gelf_reader.compression import Algorithm
from gelf_reader.errors import (
    DecompressionError,
    FieldTypeError,
    IncompleteMessageError,
    OutOfBandMessageError,
    PayloadDecodeError,
    ProtocolError,
    UnchunkedDuringAssemblyError,
)
from gelf_reader.models import GELFMessage
from gelf_reader.reader import GELFReader, decode_json_object, format_address

EXPECTED = GELFMessage(
    version="1.1", host="h1", short="boom",
    time_unix=1400000000.5, level=3, extra={"user": "alice"},
)


def _big_payload() -> bytes:
    return encode({
        "short_message": "long one",
        "full_message": "".join(f"line {i}: stack frame\n" for i in range(400)),
        "_request_id": "req-000123",
    })


class TestUnchunked:
    def test_documented_example(self, transport, sample_payload):
        transport.feed(encode(sample_payload))
        reader = GELFReader(transport)
        assert reader.read_message() == EXPECTED
        assert reader.last_chunk_count == 0

    def test_stops_after_one_datagram(self, transport, sample_payload):
        transport.feed(encode(sample_payload), encode(sample_payload))
        GELFReader(transport).read_message()
        assert transport.remaining == 1

    def test_receive_buffer_size(self, transport, sample_payload):
        transport.feed(encode(sample_payload))
        GELFReader(transport, max_chunk_size=1420).read_payload()
        assert transport.recv_sizes == [1420]

    def test_trailing_nul_is_ignored(self, transport, sample_payload):
        transport.feed(encode(sample_payload) + b"\x00")
        assert GELFReader(transport).read_message() == EXPECTED

    @pytest.mark.parametrize("compress,algorithm", [
        (lambda b: b, Algorithm.NONE),
        (gzip.compress, Algorithm.GZIP),
        (zlib.compress, Algorithm.ZLIB),
    ])
    def test_compression_is_transparent(self, transport, sample_payload, compress, algorithm):
        transport.feed(compress(encode(sample_payload)))
        reader = GELFReader(transport)
        assert reader.read_message() == EXPECTED
        assert reader.last_compression is algorithm


class TestChunked:
    @pytest.mark.parametrize("chunk_size", [1, 7, 64, 4096])
    def test_in_order_reassembly(self, transport, sample_payload, chunk_size):
        data = encode(sample_payload)
        transport.feed(*make_chunks(data, chunk_size))
        reader = GELFReader(transport)
        assert reader.read_payload() == data

    def test_out_of_order_reassembly(self, transport):
        data = _big_payload()
        chunks = make_chunks(data, 500)
        random.Random(7).shuffle(chunks)
        transport.feed(*chunks)
        reader = GELFReader(transport)
        assert reader.read_payload() == data
        assert reader.last_chunk_count == len(chunks)

    def test_index_zero_last(self, transport, sample_payload):
        chunks = make_chunks(encode(sample_payload), 30)
        transport.feed(*chunks[1:], chunks[0])
        assert GELFReader(transport).read_message() == EXPECTED

    def test_compressed_then_chunked(self, transport):
        data = _big_payload()
        chunks = make_chunks(gzip.compress(data), 64)
        transport.feed(*chunks)
        reader = GELFReader(transport)
        assert reader.read_payload() == data
        assert reader.last_compression is Algorithm.GZIP

    def test_single_chunk_message(self, transport, sample_payload):
        transport.feed(make_chunk(b"onlyone!", 0, 1, encode(sample_payload)))
        assert GELFReader(transport).read_message() == EXPECTED

    def test_next_read_starts_fresh(self, transport, sample_payload):
        transport.feed(*make_chunks(encode(sample_payload), 20, b"first..."))
        transport.feed(*make_chunks(encode(sample_payload), 25, b"second.."))
        reader = GELFReader(transport)
        assert reader.read_message() == EXPECTED
        assert reader.read_message() == EXPECTED
        assert transport.remaining == 0


class TestProtocolErrors:
    def test_out_of_band_id(self, transport):
        transport.feed(make_chunk(b"AAAAAAAA", 0, 2, b'{"short'),
                       make_chunk(b"BBBBBBBB", 1, 2, b'_message": "x"}'))
        with pytest.raises(OutOfBandMessageError):
            GELFReader(transport).read_message()

    def test_unchunked_during_assembly(self, transport, sample_payload):
        transport.feed(make_chunk(b"AAAAAAAA", 0, 2, b"{"), encode(sample_payload))
        with pytest.raises(UnchunkedDuringAssemblyError):
            GELFReader(transport).read_message()

    def test_receive_cap_raises_incomplete(self, transport):
        transport.feed(*[make_chunk(b"AAAAAAAA", 0, 3, b"{")] * 5)
        with pytest.raises(IncompleteMessageError) as excinfo:
            GELFReader(transport, max_receives=4).read_payload()
        assert (excinfo.value.received, excinfo.value.total, excinfo.value.attempts) == (1, 3, 4)
        assert transport.remaining == 1

    def test_default_cap_is_128(self, transport):
        transport.feed(*[make_chunk(b"AAAAAAAA", 0, 2, b"{")] * 200)
        with pytest.raises(IncompleteMessageError):
            GELFReader(transport).read_payload()
        assert transport.remaining == 72

    def test_truncated_header(self, transport):
        transport.feed(b"\x1e\x0f\x01\x02")
        with pytest.raises(ProtocolError):
            GELFReader(transport).read_payload()

    def test_invalid_max_receives(self, transport):
        with pytest.raises(ValueError):
            GELFReader(transport, max_receives=0)


class TestDecodeErrors:
    def test_transport_failure_propagates(self, transport):
        with pytest.raises(TimeoutError):
            GELFReader(transport).read_message()

    def test_invalid_json(self, transport):
        transport.feed(b"definitely not json")
        with pytest.raises(PayloadDecodeError):
            GELFReader(transport).read_message()

    def test_json_array_rejected(self, transport):
        transport.feed(b"[1, 2, 3]")
        with pytest.raises(PayloadDecodeError, match="object"):
            GELFReader(transport).read_message()

    def test_invalid_utf8(self, transport):
        transport.feed(b'{"short_message": "\xff\xfe"}')
        with pytest.raises(PayloadDecodeError):
            GELFReader(transport).read_message()

    def test_corrupt_gzip(self, transport):
        transport.feed(b"\x1f\x8b\x00\x00garbage")
        with pytest.raises(DecompressionError):
            GELFReader(transport).read_message()

    def test_wrong_field_type(self, transport):
        transport.feed(encode({"host": ["not", "a", "string"]}))
        with pytest.raises(FieldTypeError):
            GELFReader(transport).read_message()

    def test_empty_datagram(self, transport):
        transport.feed(b"")
        with pytest.raises(PayloadDecodeError):
            GELFReader(transport).read_message()

    def test_deeply_nested_json(self, transport):
        transport.feed(gzip.compress(b'{"_x": ' + b"[" * 100_000 + b"]" * 100_000 + b"}"))
        with pytest.raises(PayloadDecodeError, match="nested"):
            GELFReader(transport).read_message()

    def test_decode_json_object_ignores_trailing_data(self):
        assert decode_json_object(b'  {"a": 1}\n{"b": 2}') == {"a": 1}


class TestLegacyRead:
    def test_readinto_full_text(self, transport):
        transport.feed(encode({"short_message": "short", "full_message": "the full text"}))
        buf = bytearray(64)
        n = GELFReader(transport).readinto(buf)
        assert bytes(buf[:n]) == b"the full text"

    def test_readinto_falls_back_to_short(self, transport):
        transport.feed(encode({"short_message": "short", "full_message": ""}))
        buf = bytearray(64)
        n = GELFReader(transport).readinto(buf)
        assert bytes(buf[:n]) == b"short"

    def test_readinto_truncates(self, transport):
        transport.feed(encode({"short_message": "0123456789"}))
        buf = bytearray(4)
        assert GELFReader(transport).readinto(buf) == 4
        assert bytes(buf) == b"0123"

    def test_read_with_size(self, transport):
        transport.feed(encode({"short_message": "hello"}), encode({"short_message": "world"}))
        reader = GELFReader(transport)
        assert reader.read(3) == b"hel"
        assert reader.read() == b"world"


class TestReaderSurface:
    def test_read_to_map(self, transport, sample_payload):
        transport.feed(encode(sample_payload))
        assert GELFReader(transport).read_to_map() == sample_payload

    def test_addr(self):
        reader = GELFReader(ScriptedTransport(address=("10.0.0.5", 12201)))
        assert reader.addr == "10.0.0.5:12201"

    def test_format_ipv6_address(self):
        assert format_address(("::1", 12201, 0, 0)) == "[::1]:12201"

    def test_context_manager_closes(self, transport):
        with GELFReader(transport) as reader:
            assert reader.transport is transport
        assert transport.closed


class TestLoopback:
    def test_listen_and_receive_chunks(self, sample_payload):
        with GELFReader.listen("127.0.0.1", 0, receive_timeout=5.0) as reader:
            host, port = reader.transport.getsockname()
            assert reader.addr == f"127.0.0.1:{port}"

            sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                for chunk in make_chunks(zlib.compress(encode(sample_payload)), 16):
                    sender.sendto(chunk, (host, port))
            finally:
                sender.close()

            assert reader.read_message() == EXPECTED

    def test_concurrent_readers_are_serialized(self, sample_payload):
        """Two threads sharing a reader each get a whole message."""
        with GELFReader.listen("127.0.0.1", 0, receive_timeout=5.0) as reader:
            host, port = reader.transport.getsockname()
            sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                for message_id in (b"msg-one.", b"msg-two."):
                    for chunk in make_chunks(encode(sample_payload), 10, message_id):
                        sender.sendto(chunk, (host, port))
            finally:
                sender.close()

            results, errors = [], []

            def _read():
                try:
                    results.append(reader.read_message())
                except Exception as exc:
                    errors.append(exc)

            threads = [threading.Thread(target=_read) for _ in range(2)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10)

            assert errors == []
            assert results == [EXPECTED, EXPECTED]
