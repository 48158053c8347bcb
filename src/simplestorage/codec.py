"""
Object Graph Codecs
===================

Codecs translate a Python object graph to and from a binary stream. Shared and
cyclic references within one graph are resolved by the codec's own memo table,
so a reloaded graph keeps the identity structure of the original.

Two codecs are provided:

- ``PickleCodec``: the standard library ``pickle`` module (default)
- ``DillCodec``: ``dill``, which also handles lambdas, closures and classes
  defined interactively

Codec instances hold no per-call state, but the underlying modules are driven
by one ``Storage`` at a time under that storage's lock.
"""

import logging
import pickle
from abc import ABC, abstractmethod
from typing import IO, Any, Optional

from .error_handling import StorageConfigurationError

# Optional dependency - dill for enhanced object serialization
try:
    import dill

    DILL_AVAILABLE = True
except ImportError:
    dill = None  # type: ignore
    DILL_AVAILABLE = False

logger = logging.getLogger(__name__)

__all__ = [
    "ObjectCodec",
    "PickleCodec",
    "DillCodec",
    "create_codec",
    "list_available_codecs",
    "is_serializable",
    "verify_serializable",
    "DILL_AVAILABLE",
]


class ObjectCodec(ABC):
    """Abstract base class for object graph codecs."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the codec identifier."""
        pass

    @abstractmethod
    def dump(self, value: Any, stream: IO[bytes]) -> None:
        """Encode ``value`` onto ``stream``."""
        pass

    @abstractmethod
    def load(self, stream: IO[bytes]) -> Any:
        """Decode one object graph from ``stream``."""
        pass

    @abstractmethod
    def dumps(self, value: Any) -> bytes:
        """Encode ``value`` to bytes."""
        pass

    @abstractmethod
    def loads(self, data: bytes) -> Any:
        """Decode one object graph from ``data``."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(protocol={getattr(self, 'protocol', None)})"


class PickleCodec(ObjectCodec):
    """Codec backed by the standard library ``pickle`` module."""

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        _check_protocol(protocol, pickle.HIGHEST_PROTOCOL)
        self.protocol = protocol

    @property
    def name(self) -> str:
        return "pickle"

    def dump(self, value: Any, stream: IO[bytes]) -> None:
        pickle.dump(value, stream, protocol=self.protocol)

    def load(self, stream: IO[bytes]) -> Any:
        return pickle.load(stream)

    def dumps(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self.protocol)

    def loads(self, data: bytes) -> Any:
        return pickle.loads(data)


class DillCodec(ObjectCodec):
    """Codec backed by ``dill``.

    Raises
    ------
    StorageConfigurationError
        If dill is not installed
    """

    def __init__(self, protocol: Optional[int] = None):
        if not DILL_AVAILABLE or dill is None:
            raise StorageConfigurationError(
                "dill is required for the dill codec but is not available. "
                "Install with: pip install dill",
                {"codec": "dill"},
            )
        if protocol is None:
            protocol = dill.HIGHEST_PROTOCOL
        _check_protocol(protocol, dill.HIGHEST_PROTOCOL)
        self.protocol = protocol

    @property
    def name(self) -> str:
        return "dill"

    def dump(self, value: Any, stream: IO[bytes]) -> None:
        dill.dump(value, stream, protocol=self.protocol)

    def load(self, stream: IO[bytes]) -> Any:
        return dill.load(stream)

    def dumps(self, value: Any) -> bytes:
        return dill.dumps(value, protocol=self.protocol)

    def loads(self, data: bytes) -> Any:
        return dill.loads(data)


def _check_protocol(protocol: int, highest: int) -> None:
    if not isinstance(protocol, int) or not (0 <= protocol <= highest):
        raise StorageConfigurationError(
            f"pickle protocol must be between 0 and {highest}, got {protocol!r}",
            {"protocol": protocol},
        )


def list_available_codecs():
    """List the codec names usable in this environment.

    Returns
    -------
    list
        ``["pickle"]``, plus ``"dill"`` when dill is installed
    """
    codecs = ["pickle"]
    if DILL_AVAILABLE:
        codecs.append("dill")
    return codecs


def create_codec(name: str = "pickle", protocol: Optional[int] = None) -> ObjectCodec:
    """Create a codec by name.

    Parameters
    ----------
    name : str
        ``"pickle"`` or ``"dill"`` (case-insensitive)
    protocol : int, optional
        Pickle protocol; defaults to the highest supported one

    Raises
    ------
    StorageConfigurationError
        If the name is unknown or the codec is unavailable
    """
    key = str(name).lower()
    if key == "pickle":
        codec = PickleCodec() if protocol is None else PickleCodec(protocol)
    elif key == "dill":
        codec = DillCodec(protocol)
    else:
        raise StorageConfigurationError(
            f"Unsupported codec: {name}. Supported: ['pickle', 'dill']",
            {"codec": name},
        )

    logger.debug(f"Created codec {codec!r}")
    return codec


def is_serializable(value, codec: Optional[ObjectCodec] = None) -> bool:
    """Check if a value can be encoded by ``codec`` (pickle by default).

    The encoded bytes are discarded.

    Parameters
    ----------
    value : object
        Any Python object to test
    codec : ObjectCodec, optional
        Codec to test with

    Returns
    -------
    bool
        True if the value can be encoded, False otherwise
    """
    codec = codec or PickleCodec()
    try:
        codec.dumps(value)
        return True
    except Exception:
        return False


def verify_serializable(
    value, codec: Optional[ObjectCodec] = None, raise_on_error: bool = True
):
    """Verify that a value survives an encode/decode round trip.

    Parameters
    ----------
    value : object
        Any Python object to verify
    codec : ObjectCodec, optional
        Codec to verify with (pickle by default)
    raise_on_error : bool, default True
        If True, re-raises the codec's exception on failure.
        If False, returns a tuple (success: bool, error_message: str)

    Returns
    -------
    bool or tuple
        If raise_on_error=True: Returns True if successful, raises exception if not
        If raise_on_error=False: Returns (success: bool, error_message: str)
    """
    codec = codec or PickleCodec()
    try:
        codec.loads(codec.dumps(value))
    except Exception as e:
        if raise_on_error:
            raise
        return False, f"Object cannot be encoded with {codec.name}: {type(e).__name__}: {e}"

    if raise_on_error:
        return True
    return True, ""
