"""
simplestorage - Persist Python object graphs to files or streams with optional compression.

Object graphs are encoded with pickle (or dill) and can be run through a
deflate or gzip filter on the way to disk. Shared and cyclic references inside a
graph survive the round trip.

Key Features:
- Write/read to file paths or binary streams
- Optional deflate or gzip compression at the fastest level
- Pluggable codecs (pickle, dill)
- Thread-safe: one lock per storage guards its codec
- Cancellable async variants running on worker threads

Quick Start:
    >>> from simplestorage import CompressionAlgorithm, read, save
    >>>
    >>> # Store some data
    >>> save({"key": "value"}, "data.bin", CompressionAlgorithm.GZIP)
    >>>
    >>> # Retrieve data
    >>> data = read("data.bin", CompressionAlgorithm.GZIP)
"""

__version__ = "0.1.0"

from .codec import DillCodec, ObjectCodec, PickleCodec, create_codec
from .compression import CompressionAlgorithm
from .config import StorageConfig, create_storage_config
from .error_handling import (
    InvalidArgumentError,
    OperationCancelledError,
    StorageConfigurationError,
    StorageError,
    TypeMismatchError,
    UnsupportedAlgorithmError,
)
from .extensions import StorableMixin, save
from .storage import (
    Storage,
    get_storage,
    read,
    read_async,
    reset_storage,
    write,
    write_async,
)
from .utils import get_storage_info

__all__ = [
    # Core classes
    "Storage",
    "StorageConfig",
    "CompressionAlgorithm",
    "get_storage",
    "reset_storage",
    "create_storage_config",
    # Module-level operations
    "write",
    "read",
    "write_async",
    "read_async",
    "save",
    "StorableMixin",
    "get_storage_info",
    # Codecs
    "ObjectCodec",
    "PickleCodec",
    "DillCodec",
    "create_codec",
    # Errors
    "StorageError",
    "InvalidArgumentError",
    "UnsupportedAlgorithmError",
    "OperationCancelledError",
    "TypeMismatchError",
    "StorageConfigurationError",
    # Version info
    "__version__",
]
