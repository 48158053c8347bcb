"""
Configuration Management for SimpleStorage
==========================================

This module provides the storage configuration dataclass and helpers to build it
from keyword overrides, dictionaries and JSON files.

Compression level is deliberately absent: both algorithms always run at their
fastest level.
"""

import json
import logging
import pickle
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

from .error_handling import StorageConfigurationError

logger = logging.getLogger(__name__)

VALID_CODECS = {"pickle", "dill"}
VALID_COMPRESSION = {"none", "deflate", "gzip"}


@dataclass
class StorageConfig:
    """Configuration for codec selection and default compression."""

    codec: str = "pickle"  # pickle, dill
    pickle_protocol: int = pickle.HIGHEST_PROTOCOL
    default_compression: str = "none"  # none, deflate, gzip

    def __post_init__(self):
        """Validate storage configuration."""
        self.codec = str(self.codec).lower()
        if self.codec not in VALID_CODECS:
            raise StorageConfigurationError(
                f"codec must be one of {sorted(VALID_CODECS)}", {"codec": self.codec}
            )

        if not isinstance(self.pickle_protocol, int) or not (
            0 <= self.pickle_protocol <= pickle.HIGHEST_PROTOCOL
        ):
            raise StorageConfigurationError(
                f"pickle_protocol must be between 0 and {pickle.HIGHEST_PROTOCOL}",
                {"pickle_protocol": self.pickle_protocol},
            )

        self.default_compression = str(
            getattr(self.default_compression, "value", self.default_compression)
        ).lower()
        if self.default_compression not in VALID_COMPRESSION:
            raise StorageConfigurationError(
                f"default_compression must be one of {sorted(VALID_COMPRESSION)}",
                {"default_compression": self.default_compression},
            )

        logger.debug(
            f"Storage configured: codec={self.codec}@{self.pickle_protocol}, "
            f"default_compression={self.default_compression}"
        )

    @classmethod
    def create_performance_optimized(cls) -> "StorageConfig":
        """Create a configuration that skips compression entirely."""
        return cls(default_compression="none")

    @classmethod
    def create_size_optimized(cls) -> "StorageConfig":
        """Create a configuration that deflates everything by default."""
        return cls(default_compression="deflate")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_storage_config(
    performance_mode: bool = False, size_mode: bool = False, **overrides
) -> StorageConfig:
    """
    Factory function for creating configurations with convenience parameters.

    Args:
        performance_mode: If True, optimize for speed over size
        size_mode: If True, optimize for size over speed
        **overrides: Direct override values for any config field

    Returns:
        Configured StorageConfig instance
    """
    if performance_mode and size_mode:
        raise StorageConfigurationError(
            "Cannot enable both performance_mode and size_mode"
        )

    if performance_mode:
        config = StorageConfig.create_performance_optimized()
    elif size_mode:
        config = StorageConfig.create_size_optimized()
    else:
        config = StorageConfig()

    values = config.to_dict()
    known = {f.name for f in fields(StorageConfig)}
    for key, value in overrides.items():
        if key in known:
            values[key] = value
        else:
            logger.warning(f"Unknown configuration parameter ignored: {key}")

    return StorageConfig(**values)


def load_config_from_dict(data: Dict[str, Any]) -> StorageConfig:
    """Build a StorageConfig from a plain dictionary."""
    if not isinstance(data, dict):
        raise StorageConfigurationError(
            f"Configuration must be a dictionary, got {type(data).__name__}"
        )
    return create_storage_config(**data)


def load_config_from_json(path: Union[str, Path]) -> StorageConfig:
    """Load a StorageConfig from a JSON file."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageConfigurationError(
                f"Invalid JSON in configuration file: {e}", {"config_file": str(path)}
            ) from e

    logger.debug(f"Loaded storage configuration from {path}")
    return load_config_from_dict(data)


def save_config_to_json(config: StorageConfig, path: Union[str, Path]) -> None:
    """Write a StorageConfig to a JSON file."""
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
    logger.debug(f"Saved storage configuration to {path}")
