"""
Compression Adapter
===================

Wraps a binary stream in a compressing or decompressing filter stream so that
an object codec can read or write straight through it.

Supported algorithms:
- none: stream is used as-is
- deflate: raw RFC 1951 deflate stream (no zlib header or checksum)
- gzip: standard gzip member (RFC 1952)

Both algorithms run at the fastest compression level. The level is not
configurable.

Filters never close the stream they wrap: closing a filter flushes the
compressed tail, and the caller can keep using the underlying stream afterward.

Usage:
    from simplestorage.compression import CompressionAlgorithm, compress, decompress
    from simplestorage.codec import PickleCodec

    with open("data.bin", "wb") as f:
        compress(data, f, CompressionAlgorithm.GZIP, codec=PickleCodec())
"""

import gzip
import io
import logging
import zlib
from contextlib import nullcontext
from enum import Enum
from typing import IO, Any, Optional

from .codec import ObjectCodec
from .error_handling import (
    UnsupportedAlgorithmError,
    check_instance,
    require_value,
    storage_operation_context,
)

logger = logging.getLogger(__name__)

FASTEST_LEVEL = 1
CHUNK_SIZE = 64 * 1024

__all__ = [
    "CompressionAlgorithm",
    "open_compressor",
    "open_decompressor",
    "compress",
    "decompress",
    "list_available_algorithms",
    "FASTEST_LEVEL",
]


class CompressionAlgorithm(str, Enum):
    """Closed set of stream compression algorithms."""

    NONE = "none"
    DEFLATE = "deflate"
    GZIP = "gzip"

    @classmethod
    def parse(cls, value) -> "CompressionAlgorithm":
        """Return the member for ``value`` (a member or a case-insensitive name).

        Raises
        ------
        UnsupportedAlgorithmError
            If ``value`` does not name a member
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnsupportedAlgorithmError(
            f"unknown algorithm: {value!r}. Supported: {list_available_algorithms()}",
            {"algorithm": repr(value)},
        )

    def __str__(self) -> str:
        return self.value


def list_available_algorithms():
    """List all compression algorithm names.

    Returns
    -------
    list
        Algorithm names, ``"none"`` first
    """
    return [algorithm.value for algorithm in CompressionAlgorithm]


class _DeflateWriter(io.RawIOBase):
    """Raw deflate compressor over a writable stream."""

    def __init__(self, raw: IO[bytes], level: int = FASTEST_LEVEL):
        self._raw = raw
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, -zlib.MAX_WBITS)

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed deflate stream")
        view = memoryview(b)
        data = self._compressor.compress(view)
        if data:
            self._raw.write(data)
        return view.nbytes

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._raw.write(self._compressor.flush(zlib.Z_FINISH))
        finally:
            super().close()


class _DeflateReader(io.RawIOBase):
    """Raw deflate decompressor over a readable stream.

    Bytes read past the end of the deflate stream are pushed back when the
    underlying stream is seekable.
    """

    def __init__(self, raw: IO[bytes]):
        self._raw = raw
        self._decompressor = zlib.decompressobj(-zlib.MAX_WBITS)

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        view = memoryview(b).cast("B")
        if not len(view):
            return 0

        while not self._decompressor.eof:
            data = self._decompressor.unconsumed_tail
            if not data:
                data = self._raw.read(CHUNK_SIZE)
                if not data:
                    raise EOFError(
                        "Compressed stream ended before the end-of-stream marker was reached"
                    )

            chunk = self._decompressor.decompress(data, len(view))
            if self._decompressor.eof:
                self._rewind_unused()
            if chunk:
                view[: len(chunk)] = chunk
                return len(chunk)

        return 0

    def _rewind_unused(self) -> None:
        unused = len(self._decompressor.unused_data)
        seekable = getattr(self._raw, "seekable", None)
        if unused and seekable is not None and seekable():
            self._raw.seek(-unused, io.SEEK_CUR)


def open_compressor(stream: IO[bytes], algorithm) -> IO[bytes]:
    """Open a compressing filter stream over ``stream``.

    Closing the returned filter flushes the compressed output but leaves
    ``stream`` open.

    Raises
    ------
    UnsupportedAlgorithmError
        If ``algorithm`` is NONE or unknown
    """
    algorithm = _require_algorithm(algorithm)
    if algorithm is CompressionAlgorithm.DEFLATE:
        return io.BufferedWriter(_DeflateWriter(stream), buffer_size=CHUNK_SIZE)
    return gzip.GzipFile(fileobj=stream, mode="wb", compresslevel=FASTEST_LEVEL)


def open_decompressor(stream: IO[bytes], algorithm) -> IO[bytes]:
    """Open a decompressing filter stream over ``stream``.

    Closing the returned filter leaves ``stream`` open.

    Raises
    ------
    UnsupportedAlgorithmError
        If ``algorithm`` is NONE or unknown
    """
    algorithm = _require_algorithm(algorithm)
    if algorithm is CompressionAlgorithm.DEFLATE:
        return io.BufferedReader(_DeflateReader(stream), buffer_size=CHUNK_SIZE)
    return gzip.GzipFile(fileobj=stream, mode="rb")


def compress(
    value: Any,
    destination: IO[bytes],
    algorithm,
    *,
    codec: ObjectCodec,
    lock=None,
) -> None:
    """Encode ``value`` through a compressing filter over ``destination``.

    Parameters
    ----------
    value : object
        Object graph to encode; must not be None
    destination : binary stream
        Writable stream; left open afterward
    algorithm : CompressionAlgorithm or str
        DEFLATE or GZIP
    codec : ObjectCodec
        Codec used for encoding
    lock : context manager, optional
        Held for the duration of the encode call

    Raises
    ------
    InvalidArgumentError
        If value or destination is None
    UnsupportedAlgorithmError
        If algorithm is NONE or unknown
    """
    require_value(destination, "destination")
    require_value(value, "value")
    algorithm = _require_algorithm(algorithm)

    with storage_operation_context(
        f"compress ({algorithm})", algorithm=str(algorithm), codec=codec.name
    ):
        compressor = open_compressor(destination, algorithm)
        try:
            with lock or nullcontext():
                codec.dump(value, compressor)
        finally:
            compressor.close()


def decompress(
    source: IO[bytes],
    algorithm,
    *,
    codec: ObjectCodec,
    lock=None,
    expected_type: Optional[type] = None,
) -> Any:
    """Decode one object graph through a decompressing filter over ``source``.

    Parameters
    ----------
    source : binary stream
        Readable stream; left open afterward
    algorithm : CompressionAlgorithm or str
        DEFLATE or GZIP
    codec : ObjectCodec
        Codec used for decoding
    lock : context manager, optional
        Held for the duration of the decode call
    expected_type : type, optional
        If given, the decoded value must be an instance of it

    Returns
    -------
    object
        The decoded value

    Raises
    ------
    InvalidArgumentError
        If source is None
    UnsupportedAlgorithmError
        If algorithm is NONE or unknown
    TypeMismatchError
        If the value does not match ``expected_type``
    """
    require_value(source, "source")
    algorithm = _require_algorithm(algorithm)

    with storage_operation_context(
        f"decompress ({algorithm})", algorithm=str(algorithm), codec=codec.name
    ):
        decompressor = open_decompressor(source, algorithm)
        try:
            with lock or nullcontext():
                result = codec.load(decompressor)
        finally:
            decompressor.close()

    return check_instance(result, expected_type)


def _require_algorithm(algorithm) -> CompressionAlgorithm:
    algorithm = CompressionAlgorithm.parse(algorithm)
    if algorithm is CompressionAlgorithm.NONE:
        raise UnsupportedAlgorithmError(
            "no compression algorithm selected", {"algorithm": str(algorithm)}
        )
    return algorithm
