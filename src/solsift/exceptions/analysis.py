"""Analysis-related exceptions: file access, parsing, scope and detectors."""

from pathlib import Path
from typing import Dict, Optional, Sequence

from .base import SolsiftError


class AnalysisError(SolsiftError):
    """Base class for analysis-related errors."""
    pass


class FileAccessError(AnalysisError):
    """Raised when a source file cannot be read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class ParsingError(AnalysisError):
    """Raised when a source file does not produce a clean syntax tree."""

    def __init__(self, filepath: Path, reason: str, line: Optional[int] = None):
        details: Dict[str, str] = {"filepath": str(filepath), "reason": reason}
        if line is not None:
            details["line"] = str(line)
        super().__init__(f"Failed to parse Solidity file: {filepath}", details=details)
        self.filepath = filepath
        self.reason = reason
        self.line = line


class ScopeError(AnalysisError):
    """Raised when the analysis scope is unusable.

    This is the only fatal analysis error: a missing scope path, or a scope
    that contains no readable ``.sol`` files. Everything narrower than the
    scope is reported as a diagnostic instead.
    """

    def __init__(self, reason: str, paths: Sequence[Path] = ()):
        details: Dict[str, str] = {"reason": reason}
        if paths:
            details["paths"] = ", ".join(str(p) for p in paths)
        super().__init__(f"Invalid analysis scope: {reason}", details=details)
        self.reason = reason
        self.paths = tuple(paths)


class DetectorError(AnalysisError):
    """Raised when a detector check fails on a node."""

    def __init__(self, detector_id: str, node_kind: str, reason: str):
        super().__init__(
            f"Detector {detector_id} failed on {node_kind}",
            details={"detector": detector_id, "node": node_kind, "reason": reason},
        )
        self.detector_id = detector_id
        self.node_kind = node_kind
        self.reason = reason
