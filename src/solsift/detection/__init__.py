"""Detector registry, per-file context and the dispatch engine."""

from .context import AnalysisContext
from .engine import DispatchEngine, FileResult
from .registry import DetectorInfo, DetectorRegistry, DetectorSpec, DispatchTable, Match

__all__ = [
    "AnalysisContext",
    "DispatchEngine",
    "FileResult",
    "DetectorInfo",
    "DetectorRegistry",
    "DetectorSpec",
    "DispatchTable",
    "Match",
]
