"""
Utility functions for simplestorage
===================================

File inspection helpers for stored object graphs.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

import xxhash

logger = logging.getLogger(__name__)


def hash_file(file_path: Union[str, Path], chunk_size: int = 8192) -> str:
    """
    Hash a file's content with xxh3_64.

    Args:
        file_path: Path to the file
        chunk_size: Read size in bytes

    Returns:
        Hex string hash of the file content
    """
    hasher = xxhash.xxh3_64()
    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def get_storage_info(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Get size and content hash of a stored file.

    Parameters
    ----------
    file_path : str or Path
        Path to a file written by ``Storage.write``

    Returns
    -------
    dict
        ``file_size_bytes``, ``file_size_mb`` and ``content_hash``

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")

    file_size = file_path.stat().st_size
    content_hash = hash_file(file_path)
    logger.debug(f"Inspected {file_path}: {file_size} bytes, xxh3_64={content_hash}")

    return {
        "file_size_bytes": file_size,
        "file_size_mb": file_size / (1024 * 1024),
        "content_hash": content_hash,
    }
