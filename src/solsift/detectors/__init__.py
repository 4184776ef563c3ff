"""Built-in detectors.

The registry is assembled from an explicit tuple; adding a detector means
defining its spec in the module for its severity and listing it in that
module's ``DETECTORS``.
"""

from ..detection.registry import DetectorRegistry, DetectorSpec
from . import gas, high, low, medium, nc

BUILTIN_DETECTORS: tuple[DetectorSpec, ...] = (
    *high.DETECTORS,
    *medium.DETECTORS,
    *low.DETECTORS,
    *gas.DETECTORS,
    *nc.DETECTORS,
)


def default_registry() -> DetectorRegistry:
    """Registry holding every built-in detector."""
    return DetectorRegistry(BUILTIN_DETECTORS)


__all__ = ["BUILTIN_DETECTORS", "default_registry"]
