"""
Storage Facade
==============

``Storage`` writes object graphs to streams or files and reads them back, with
optional stream compression. Each instance owns one codec and one lock; every
encode and decode call on that codec runs inside the lock.

Paths passed to ``write`` are created or truncated; paths passed to ``read`` are
opened read-only. Files opened here are always closed before the call returns.
Streams supplied by the caller are never closed.
"""

import asyncio
import functools
import logging
import os
import threading
import time
from concurrent.futures import Executor
from typing import IO, Any, Dict, Optional, Tuple, Union

from .codec import ObjectCodec, create_codec
from .compression import CompressionAlgorithm
from .compression import compress as _compress
from .compression import decompress as _decompress
from .config import StorageConfig
from .error_handling import (
    InvalidArgumentError,
    OperationCancelledError,
    check_instance,
    require_value,
    storage_operation_context,
    validate_file_path,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]
Target = Union[PathLike, IO[bytes]]

# Key that marks a dict as written by write_with_metadata
ENVELOPE_MARKER = "simplestorage_version"


class Storage:
    """Object graph persistence with optional deflate/gzip compression.

    Examples:
        storage = Storage()
        storage.write(graph, "graph.bin", CompressionAlgorithm.GZIP)
        graph = storage.read("graph.bin", "gzip")

        # With a custom codec
        storage = Storage(codec=DillCodec())
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        codec: Optional[ObjectCodec] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Initialize the storage.

        Args:
            config: Storage configuration (defaults to StorageConfig())
            codec: Codec instance; overrides config.codec when given
            executor: Executor for the async variants (loop default if None)
        """
        self.config = config or StorageConfig()
        self.codec = codec or create_codec(
            self.config.codec, self.config.pickle_protocol
        )
        self._executor = executor
        self._lock = threading.Lock()

        logger.debug(
            f"Storage initialized: codec={self.codec.name}, "
            f"default_compression={self.config.default_compression}"
        )

    def __repr__(self) -> str:
        return (
            f"Storage(codec={self.codec!r}, "
            f"default_compression={self.config.default_compression!r})"
        )

    # ------------------------------------------------------------------ write

    def write(self, value: Any, destination: Target, compression=None) -> None:
        """Encode ``value`` onto a stream or into a file.

        Args:
            value: Object graph to store; must not be None
            destination: Writable binary stream, or a file path
            compression: CompressionAlgorithm or name; None uses the configured default

        Raises:
            InvalidArgumentError: If value or destination is None, or the path is blank
            UnsupportedAlgorithmError: If compression names no known algorithm
        """
        require_value(value, "value")
        require_value(destination, "destination")
        algorithm = self._resolve_compression(compression)

        if not _is_path(destination):
            self._write_stream(value, destination, algorithm)
            return

        path = validate_file_path(destination)
        with storage_operation_context("write", file_path=str(path)):
            with path.open("wb") as stream:
                self._write_stream(value, stream, algorithm)

    def _write_stream(
        self, value: Any, stream: IO[bytes], algorithm: CompressionAlgorithm
    ) -> None:
        _check_stream(stream, "write", "destination")
        if algorithm is not CompressionAlgorithm.NONE:
            self.compress(value, stream, algorithm)
            return

        with self._lock:
            self.codec.dump(value, stream)

    # ------------------------------------------------------------------- read

    def read(
        self, source: Target, compression=None, *, expected_type: Optional[type] = None
    ) -> Any:
        """Decode one object graph from a stream or a file.

        Args:
            source: Readable binary stream, or a file path
            compression: CompressionAlgorithm or name; None uses the configured default
            expected_type: If given, the decoded value must be an instance of it

        Returns:
            The decoded value

        Raises:
            InvalidArgumentError: If source is None or the path is blank
            TypeMismatchError: If the value does not match expected_type
            FileNotFoundError: If the file does not exist
        """
        require_value(source, "source")
        algorithm = self._resolve_compression(compression)

        if not _is_path(source):
            return self._read_stream(source, algorithm, expected_type)

        path = validate_file_path(source)
        with storage_operation_context("read", file_path=str(path)):
            with path.open("rb") as stream:
                return self._read_stream(stream, algorithm, expected_type)

    def _read_stream(
        self,
        stream: IO[bytes],
        algorithm: CompressionAlgorithm,
        expected_type: Optional[type],
    ) -> Any:
        _check_stream(stream, "read", "source")
        if algorithm is not CompressionAlgorithm.NONE:
            return self.decompress(stream, algorithm, expected_type=expected_type)

        with self._lock:
            result = self.codec.load(stream)
        return check_instance(result, expected_type)

    # ------------------------------------------------------------ compression

    def compress(self, value: Any, destination: IO[bytes], algorithm) -> None:
        """Encode ``value`` through a compressing filter using this storage's codec."""
        _compress(value, destination, algorithm, codec=self.codec, lock=self._lock)

    def decompress(
        self, source: IO[bytes], algorithm, *, expected_type: Optional[type] = None
    ) -> Any:
        """Decode a value through a decompressing filter using this storage's codec."""
        return _decompress(
            source,
            algorithm,
            codec=self.codec,
            lock=self._lock,
            expected_type=expected_type,
        )

    # ------------------------------------------------------------------ async

    async def write_async(
        self, value: Any, destination: Target, compression=None, *, cancel_event=None
    ) -> None:
        """Run ``write`` on a worker thread.

        Args:
            cancel_event: Object with ``is_set()``; if already set, nothing is written

        Raises:
            OperationCancelledError: If cancel_event is set at call time
        """
        _raise_if_cancelled(cancel_event, "write")
        await self._run_in_executor(self.write, value, destination, compression)

    async def read_async(
        self,
        source: Target,
        compression=None,
        *,
        expected_type: Optional[type] = None,
        cancel_event=None,
    ) -> Any:
        """Run ``read`` on a worker thread.

        Args:
            cancel_event: Object with ``is_set()``; if already set, nothing is read

        Raises:
            OperationCancelledError: If cancel_event is set at call time
        """
        _raise_if_cancelled(cancel_event, "read")
        return await self._run_in_executor(
            self.read, source, compression, expected_type=expected_type
        )

    async def _run_in_executor(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(func, *args, **kwargs)
        )

    # --------------------------------------------------------------- metadata

    def write_with_metadata(
        self,
        value: Any,
        destination: Target,
        metadata: Optional[Dict[str, Any]] = None,
        compression=None,
    ) -> None:
        """Write ``value`` wrapped in an envelope carrying metadata.

        Args:
            value: Object graph to store
            destination: Writable binary stream, or a file path
            metadata: Optional metadata dictionary
            compression: CompressionAlgorithm or name
        """
        from . import __version__

        require_value(value, "value")
        algorithm = self._resolve_compression(compression)
        envelope = {
            "data": value,
            "metadata": metadata or {},
            ENVELOPE_MARKER: __version__,
            "timestamp": time.time(),
            "compression": algorithm.value,
        }
        self.write(envelope, destination, algorithm)

    def read_with_metadata(
        self, source: Target, compression=None
    ) -> Tuple[Any, Dict[str, Any]]:
        """Read a value written by ``write_with_metadata``.

        Returns:
            Tuple of (value, info); info is empty when the file holds no envelope
        """
        container = self.read(source, compression)
        if (
            isinstance(container, dict)
            and ENVELOPE_MARKER in container
            and "data" in container
        ):
            return container["data"], {
                "metadata": container.get("metadata", {}),
                "simplestorage_version": container.get(ENVELOPE_MARKER),
                "timestamp": container.get("timestamp"),
                "compression": container.get("compression"),
            }
        return container, {}

    def _resolve_compression(self, compression) -> CompressionAlgorithm:
        if compression is None:
            compression = self.config.default_compression
        return CompressionAlgorithm.parse(compression)


def _is_path(target: Any) -> bool:
    return isinstance(target, (str, bytes, os.PathLike))


def _check_stream(stream: Any, method: str, name: str) -> None:
    if not callable(getattr(stream, method, None)):
        raise InvalidArgumentError(
            f"{name} must be a binary stream or a file path, got {type(stream).__name__}",
            {"argument": name},
        )
    if getattr(stream, "closed", False):
        raise InvalidArgumentError(f"{name} stream is closed", {"argument": name})


def _raise_if_cancelled(cancel_event, operation: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(
            f"{operation} cancelled before start", {"operation": operation}
        )


# Default instance used by the module-level helpers
_default_storage: Optional[Storage] = None
_default_storage_lock = threading.Lock()


def get_storage(config: Optional[StorageConfig] = None) -> Storage:
    """Get the default storage instance, creating it if necessary."""
    global _default_storage
    with _default_storage_lock:
        if _default_storage is None:
            _default_storage = Storage(config)
        return _default_storage


def reset_storage(config: Optional[StorageConfig] = None) -> Storage:
    """Replace the default storage instance."""
    global _default_storage
    with _default_storage_lock:
        _default_storage = Storage(config)
        return _default_storage


def write(value: Any, destination: Target, compression=None) -> None:
    """Write ``value`` with the default storage."""
    get_storage().write(value, destination, compression)


def read(source: Target, compression=None, *, expected_type: Optional[type] = None):
    """Read a value with the default storage."""
    return get_storage().read(source, compression, expected_type=expected_type)


async def write_async(
    value: Any, destination: Target, compression=None, *, cancel_event=None
) -> None:
    """Write ``value`` with the default storage on a worker thread."""
    await get_storage().write_async(
        value, destination, compression, cancel_event=cancel_event
    )


async def read_async(
    source: Target,
    compression=None,
    *,
    expected_type: Optional[type] = None,
    cancel_event=None,
):
    """Read a value with the default storage on a worker thread."""
    return await get_storage().read_async(
        source, compression, expected_type=expected_type, cancel_event=cancel_event
    )
