"""Detector descriptors and the immutable registry.

Detectors are declarative: a ``DetectorSpec`` names the node kinds it
cares about and a pure ``check(node, ctx)`` callable. The registry is built
once from an explicit tuple of specs and never changes afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional

from ..config import AnalysisConfig, ProtocolConfig
from ..exceptions import RegistryError
from ..logging_config import get_logger
from ..models import Severity, Span

if TYPE_CHECKING:
    from tree_sitter import Node

    from .context import AnalysisContext

logger = get_logger(__name__)


@dataclass(frozen=True)
class Match:
    """What a check reports.

    ``node`` locates the match; ``span`` overrides the location (for
    matches that are not a whole node). ``message`` overrides the
    detector's title.
    """

    node: Optional[Node] = None
    message: Optional[str] = None
    span: Optional[Span] = None


CheckFn = Callable[["Node", "AnalysisContext"], Iterable[Match]]


@dataclass(frozen=True)
class DetectorSpec:
    """A declarative detector.

    Attributes:
        id:                     Stable unique identifier (e.g. "tx-origin-usage").
        title:                  One-line message used for findings.
        severity:               Severity of every finding it produces.
        interests:              Tree-sitter node kinds the check is called for.
        check:                  Callable (node, ctx) -> iterable of Match.
        description:            Longer explanation for detector listings.
        fix:                    Suggested remediation, copied to findings.
        requires_linearization: Only runs inside contracts with a linearization.
        requires_symbols:       Only runs in files whose imports all resolved.
        feature:                ProtocolConfig flag that must be on, if any.
    """

    id: str
    title: str
    severity: Severity
    interests: frozenset[str]
    check: CheckFn
    description: str = ""
    fix: Optional[str] = None
    requires_linearization: bool = False
    requires_symbols: bool = False
    feature: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "interests", frozenset(self.interests))
        if not self.id:
            raise RegistryError("<empty>", "detector id must not be empty")
        if not self.interests:
            raise RegistryError(self.id, "detector must declare at least one node kind")
        if self.feature is not None and self.feature not in ProtocolConfig.feature_names():
            raise RegistryError(self.id, f"unknown feature flag '{self.feature}'")


@dataclass(frozen=True)
class DetectorInfo:
    """Listing record for one detector."""

    id: str
    severity: Severity
    title: str
    description: str
    feature: Optional[str]


DispatchTable = Mapping[str, tuple[DetectorSpec, ...]]


class DetectorRegistry:
    """Immutable set of detectors keyed by id."""

    def __init__(self, specs: Iterable[DetectorSpec]):
        by_id: dict[str, DetectorSpec] = {}
        for spec in specs:
            if spec.id in by_id:
                raise RegistryError(spec.id, "duplicate detector id")
            by_id[spec.id] = spec
        self._specs = MappingProxyType(dict(sorted(by_id.items())))

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, detector_id: object) -> bool:
        return detector_id in self._specs

    def ids(self) -> tuple[str, ...]:
        return tuple(self._specs)

    def get(self, detector_id: str) -> DetectorSpec:
        try:
            return self._specs[detector_id]
        except KeyError:
            raise RegistryError(detector_id, "unknown detector id") from None

    def specs(self) -> tuple[DetectorSpec, ...]:
        """All specs, ordered by severity (highest first) then id."""
        return tuple(sorted(self._specs.values(), key=lambda s: (-s.severity.rank, s.id)))

    def describe(self) -> list[DetectorInfo]:
        return [
            DetectorInfo(s.id, s.severity, s.title, s.description, s.feature) for s in self.specs()
        ]

    def select(self, config: AnalysisConfig) -> frozenset[str]:
        """Ids enabled by severity floor, exclusions and protocol flags."""
        unknown = sorted(set(config.exclude_detectors) - set(self._specs))
        for detector_id in unknown:
            logger.warning(f"Unknown detector id in exclude list: {detector_id}")
        excluded = set(config.exclude_detectors)
        features = config.protocol.enabled_features()
        return frozenset(
            spec.id
            for spec in self._specs.values()
            if spec.id not in excluded
            and spec.severity.at_least(config.min_severity)
            and (spec.feature is None or spec.feature in features)
        )

    def dispatch_table(self, enabled: Optional[Iterable[str]] = None) -> DispatchTable:
        """
        Partition enabled detectors by the node kinds they care about.

        Within each kind, detectors keep id order so dispatch is
        deterministic.

        Args:
            enabled: Detector ids to include (default: all)

        Returns:
            Read-only mapping of node kind -> tuple of specs
        """
        allowed = set(self._specs) if enabled is None else set(enabled)
        table: dict[str, list[DetectorSpec]] = {}
        for spec in self._specs.values():
            if spec.id not in allowed:
                continue
            for kind in sorted(spec.interests):
                table.setdefault(kind, []).append(spec)
        return MappingProxyType({kind: tuple(specs) for kind, specs in table.items()})
