"""
solsift - static analysis for Solidity

Parses a project with tree-sitter, resolves imports, symbols and C3
inheritance across files, then runs a registry of detectors in a single
traversal per file and returns a deterministic report.
"""

__version__ = "0.1.0"

from .api import analyze
from .config import AnalysisConfig, ProtocolConfig, load_config
from .detection import DetectorRegistry, DetectorSpec, Match
from .detectors import BUILTIN_DETECTORS, default_registry
from .models import Diagnostic, DiagnosticKind, Finding, Report, Severity

__all__ = [
    "analyze",  # Main entry point
    "load_config",
    "AnalysisConfig",
    "ProtocolConfig",
    "DetectorRegistry",
    "DetectorSpec",
    "Match",
    "BUILTIN_DETECTORS",
    "default_registry",
    "Report",
    "Finding",
    "Diagnostic",
    "DiagnosticKind",
    "Severity",
]
