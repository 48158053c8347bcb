"""
Tests for file inspection utilities.
"""

import pytest
import xxhash

from simplestorage import CompressionAlgorithm, get_storage_info
from simplestorage.utils import hash_file


class TestHashFile:
    def test_matches_xxh3(self, temp_dir):
        filepath = temp_dir / "data.bin"
        filepath.write_bytes(b"hello world" * 2000)

        assert hash_file(filepath) == xxhash.xxh3_64(b"hello world" * 2000).hexdigest()

    def test_small_chunks(self, temp_dir):
        filepath = temp_dir / "data.bin"
        filepath.write_bytes(b"abcdef")

        assert hash_file(filepath, chunk_size=2) == hash_file(filepath)


class TestGetStorageInfo:
    def test_info_for_written_file(self, storage, temp_dir):
        filepath = temp_dir / "info.bin"
        storage.write(list(range(1000)), filepath, CompressionAlgorithm.GZIP)

        info = get_storage_info(filepath)

        assert info["file_size_bytes"] == filepath.stat().st_size
        assert info["file_size_mb"] == pytest.approx(info["file_size_bytes"] / (1024 * 1024))
        assert info["content_hash"] == hash_file(filepath)

    def test_identical_values_hash_equal(self, storage, temp_dir):
        first = temp_dir / "first.bin"
        second = temp_dir / "second.bin"
        storage.write({"a": [1, 2]}, first, CompressionAlgorithm.DEFLATE)
        storage.write({"a": [1, 2]}, second, CompressionAlgorithm.DEFLATE)

        assert get_storage_info(first)["content_hash"] == get_storage_info(second)["content_hash"]

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            get_storage_info(temp_dir / "missing.bin")
