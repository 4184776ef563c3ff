"""Exception hierarchy for solsift."""

from .analysis import (
    AnalysisError,
    DetectorError,
    FileAccessError,
    ParsingError,
    ScopeError,
)
from .base import SolsiftError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
    RegistryError,
)

__all__ = [
    "SolsiftError",
    "AnalysisError",
    "FileAccessError",
    "ParsingError",
    "ScopeError",
    "DetectorError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "RegistryError",
]
