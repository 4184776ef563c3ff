"""Public API for solsift.

Example:
    >>> from solsift import analyze, load_config
    >>>
    >>> report = analyze(load_config(scope=["src"]))
    >>> for finding in report.findings:
    ...     print(finding.severity.value, finding.file, finding.message)
"""

from __future__ import annotations

from typing import Optional

from .config import AnalysisConfig
from .coordinator import run_analysis
from .detection import DetectorRegistry
from .detectors import default_registry
from .logging_config import get_logger
from .models import Report

logger = get_logger(__name__)


def analyze(config: AnalysisConfig, registry: Optional[DetectorRegistry] = None) -> Report:
    """Run every enabled detector over the configured scope.

    Per-file problems (unreadable or unparsable files, unresolved imports,
    inheritance cycles, failing detectors) are reported as diagnostics on
    the returned report.

    Args:
        config: Analysis configuration
        registry: Detectors to choose from (default: all built-in detectors)

    Returns:
        Report with findings sorted by severity, file and position

    Raises:
        ScopeError: If the scope is missing, empty or entirely unreadable
    """
    if registry is None:
        registry = default_registry()
    logger.debug(f"Registry holds {len(registry)} detectors")
    return run_analysis(config, registry)
