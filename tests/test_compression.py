#!/usr/bin/env python3

"""Unit tests for the compression adapter.

Covers algorithm parsing, the filter streams' on-disk formats, the NONE guard
and cleanup of the filter when the codec fails.
"""

import gzip
import io
import threading
import zlib
from unittest.mock import MagicMock

import pytest

from simplestorage.codec import PickleCodec
from simplestorage.compression import (
    FASTEST_LEVEL,
    CompressionAlgorithm,
    compress,
    decompress,
    list_available_algorithms,
    open_compressor,
    open_decompressor,
)
from simplestorage.error_handling import (
    InvalidArgumentError,
    TypeMismatchError,
    UnsupportedAlgorithmError,
)
from simplestorage.storage import Storage


@pytest.fixture
def codec():
    return PickleCodec()


class ReadOnlyStream:
    """Bare object exposing only read(); no seekable() or seek()."""

    def __init__(self, data):
        self._buffer = io.BytesIO(data)

    def read(self, size=-1):
        return self._buffer.read(size)


class TestCompressionAlgorithm:
    """Parsing algorithm names."""

    def test_members(self):
        assert list_available_algorithms() == ["none", "deflate", "gzip"]

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("none", CompressionAlgorithm.NONE),
            ("Deflate", CompressionAlgorithm.DEFLATE),
            (" GZIP ", CompressionAlgorithm.GZIP),
            (CompressionAlgorithm.GZIP, CompressionAlgorithm.GZIP),
        ],
    )
    def test_parse(self, name, expected):
        assert CompressionAlgorithm.parse(name) is expected

    @pytest.mark.parametrize("value", ["zstd", "", 3, None, object()])
    def test_parse_unknown(self, value):
        with pytest.raises(UnsupportedAlgorithmError, match="unknown algorithm"):
            CompressionAlgorithm.parse(value)

    def test_str(self):
        assert str(CompressionAlgorithm.DEFLATE) == "deflate"

    def test_fastest_level(self):
        assert FASTEST_LEVEL == 1


class TestNoneAlgorithmGuard:
    """The adapter refuses to run without an algorithm."""

    def test_compress_with_none(self, codec):
        with pytest.raises(UnsupportedAlgorithmError, match="no compression algorithm selected"):
            compress(42, io.BytesIO(), CompressionAlgorithm.NONE, codec=codec)

    def test_decompress_with_none(self, codec):
        with pytest.raises(UnsupportedAlgorithmError, match="no compression algorithm selected"):
            decompress(io.BytesIO(), CompressionAlgorithm.NONE, codec=codec)

    def test_none_name_is_rejected_too(self, codec):
        with pytest.raises(UnsupportedAlgorithmError):
            compress(42, io.BytesIO(), "none", codec=codec)

    def test_unsupported_is_not_implemented_error(self, codec):
        with pytest.raises(NotImplementedError):
            decompress(io.BytesIO(), "snappy", codec=codec)

    def test_open_filters_with_none(self):
        with pytest.raises(UnsupportedAlgorithmError):
            open_compressor(io.BytesIO(), CompressionAlgorithm.NONE)
        with pytest.raises(UnsupportedAlgorithmError):
            open_decompressor(io.BytesIO(), CompressionAlgorithm.NONE)


class TestFormats:
    """Output is a standard stream for each algorithm."""

    def test_gzip_output_readable_by_gzip_module(self, codec):
        buffer = io.BytesIO()

        compress({"a": 1}, buffer, CompressionAlgorithm.GZIP, codec=codec)

        assert buffer.getvalue()[:2] == b"\x1f\x8b"
        assert codec.loads(gzip.decompress(buffer.getvalue())) == {"a": 1}

    def test_deflate_output_is_raw_deflate(self, codec):
        buffer = io.BytesIO()

        compress({"a": 1}, buffer, CompressionAlgorithm.DEFLATE, codec=codec)

        raw = zlib.decompress(buffer.getvalue(), -zlib.MAX_WBITS)
        assert codec.loads(raw) == {"a": 1}

    def test_reads_foreign_raw_deflate(self, codec):
        compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
        payload = compressor.compress(codec.dumps([1, 2, 3])) + compressor.flush()

        result = decompress(io.BytesIO(payload), CompressionAlgorithm.DEFLATE, codec=codec)

        assert result == [1, 2, 3]

    def test_deflate_filter_streaming(self):
        buffer = io.BytesIO()
        data = bytes(range(256)) * 2000

        with open_compressor(buffer, CompressionAlgorithm.DEFLATE) as writer:
            for start in range(0, len(data), 1000):
                writer.write(data[start : start + 1000])

        buffer.seek(0)
        with open_decompressor(buffer, CompressionAlgorithm.DEFLATE) as reader:
            assert reader.read() == data

    def test_truncated_deflate_stream(self, codec):
        buffer = io.BytesIO()
        compress(list(range(10000)), buffer, CompressionAlgorithm.DEFLATE, codec=codec)
        truncated = io.BytesIO(buffer.getvalue()[:-20])

        with pytest.raises(EOFError):
            decompress(truncated, CompressionAlgorithm.DEFLATE, codec=codec)


class TestStreamHandling:
    """Filters close, the underlying stream stays open."""

    @pytest.mark.parametrize(
        "algorithm", [CompressionAlgorithm.DEFLATE, CompressionAlgorithm.GZIP]
    )
    def test_underlying_stream_left_open(self, codec, algorithm):
        buffer = io.BytesIO()

        compress([1, 2], buffer, algorithm, codec=codec)
        assert not buffer.closed

        buffer.seek(0)
        assert decompress(buffer, algorithm, codec=codec) == [1, 2]
        assert not buffer.closed

    @pytest.mark.parametrize(
        "algorithm", [CompressionAlgorithm.DEFLATE, CompressionAlgorithm.GZIP]
    )
    def test_filter_closed_when_codec_fails(self, algorithm, monkeypatch):
        opened = []
        real_open = open_compressor

        def tracking_open(stream, alg):
            f = real_open(stream, alg)
            opened.append(f)
            return f

        monkeypatch.setattr(
            "simplestorage.compression.open_compressor", tracking_open
        )
        codec = MagicMock(spec=PickleCodec)
        codec.name = "pickle"
        codec.dump.side_effect = RuntimeError("encode failed")
        buffer = io.BytesIO()

        with pytest.raises(RuntimeError, match="encode failed"):
            compress(42, buffer, algorithm, codec=codec)

        assert opened[0].closed
        assert not buffer.closed

    def test_decompress_filter_closed_when_codec_fails(self, codec, monkeypatch):
        opened = []
        real_open = open_decompressor

        def tracking_open(stream, alg):
            f = real_open(stream, alg)
            opened.append(f)
            return f

        monkeypatch.setattr(
            "simplestorage.compression.open_decompressor", tracking_open
        )
        buffer = io.BytesIO()
        compress(42, buffer, CompressionAlgorithm.GZIP, codec=codec)
        buffer.seek(0)
        failing = MagicMock(spec=PickleCodec)
        failing.name = "pickle"
        failing.load.side_effect = RuntimeError("decode failed")

        with pytest.raises(RuntimeError, match="decode failed"):
            decompress(buffer, CompressionAlgorithm.GZIP, codec=failing)

        assert opened[0].closed

    def test_read_only_stream_with_trailer(self, codec):
        buffer = io.BytesIO()
        compress([1, 2, 3], buffer, CompressionAlgorithm.DEFLATE, codec=codec)
        stream = ReadOnlyStream(buffer.getvalue() + b"TRAILER")

        result = decompress(stream, CompressionAlgorithm.DEFLATE, codec=codec)

        assert result == [1, 2, 3]

    def test_read_only_stream_through_storage(self):
        storage = Storage()
        buffer = io.BytesIO()
        storage.write({"k": "v"}, buffer, CompressionAlgorithm.DEFLATE)
        stream = ReadOnlyStream(buffer.getvalue() + b"TRAILER")

        assert storage.read(stream, CompressionAlgorithm.DEFLATE) == {"k": "v"}

    def test_lock_held_during_encode(self, codec):
        lock = threading.Lock()
        held = []
        real_dump = codec.dump

        def checking_dump(value, stream):
            held.append(lock.locked())
            real_dump(value, stream)

        codec.dump = checking_dump

        compress(1, io.BytesIO(), CompressionAlgorithm.GZIP, codec=codec, lock=lock)

        assert held == [True]
        assert not lock.locked()


class TestValidation:
    def test_compress_none_value(self, codec):
        with pytest.raises(InvalidArgumentError):
            compress(None, io.BytesIO(), CompressionAlgorithm.GZIP, codec=codec)

    def test_compress_none_destination(self, codec):
        with pytest.raises(InvalidArgumentError):
            compress(1, None, CompressionAlgorithm.GZIP, codec=codec)

    def test_decompress_none_source(self, codec):
        with pytest.raises(InvalidArgumentError):
            decompress(None, CompressionAlgorithm.GZIP, codec=codec)

    def test_decompress_expected_type(self, codec):
        buffer = io.BytesIO()
        compress([1], buffer, CompressionAlgorithm.DEFLATE, codec=codec)
        buffer.seek(0)

        with pytest.raises(TypeMismatchError):
            decompress(buffer, CompressionAlgorithm.DEFLATE, codec=codec, expected_type=str)
