"""
Shared fixtures for simplestorage tests.
"""

import tempfile
from pathlib import Path

import pytest

from simplestorage import Storage, reset_storage

from family import build_family


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def storage():
    """Fresh storage with the default pickle codec."""
    return Storage()


@pytest.fixture
def family():
    """Johnny Doe, linked to both parents and two siblings."""
    return build_family()


@pytest.fixture
def test_data_complex():
    """Complex test data: nested dictionary with various types."""
    return {
        "integers": [1, 2, 3, 4, 5],
        "floats": [1.1, 2.2, 3.3],
        "strings": ["hello", "world", "test"],
        "nested": {
            "inner_list": [10, 20, 30],
            "inner_dict": {"key": "value", "number": 42},
        },
        "boolean": True,
        "none_value": None,
    }


@pytest.fixture(autouse=True)
def fresh_default_storage():
    """Keep the module-level default storage isolated between tests."""
    reset_storage()
    yield
    reset_storage()
