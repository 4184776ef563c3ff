"""Configuration exceptions: paths, settings and the detector registry."""

from pathlib import Path
from typing import Any

from .base import SolsiftError


class ConfigurationError(SolsiftError):
    """Base class for configuration-related errors."""

    pass


class InvalidPathError(ConfigurationError):
    """Raised when a provided path is invalid."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Invalid path: {path}", details={"path": str(path), "reason": reason})
        self.path = path
        self.reason = reason


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class RegistryError(ConfigurationError):
    """Raised when the detector registry cannot be built."""

    def __init__(self, detector_id: str, reason: str):
        super().__init__(
            f"Invalid detector registration: {detector_id}",
            details={"detector": detector_id, "reason": reason},
        )
        self.detector_id = detector_id
        self.reason = reason
