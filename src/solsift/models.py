"""Report data model: severities, findings, diagnostics and the merged report.

Everything here is an immutable value. A ``Report`` carries no timestamps or
other run-dependent data, so two runs over the same input serialise to the
same bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional


class Severity(str, Enum):
    """Finding severity, ordered High > Medium > Low > Gas > NC."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    GAS = "Gas"
    NC = "NC"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: Severity) -> bool:
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        """Parse a severity name case-insensitively ("high", "NC", "gas")."""
        if isinstance(value, Severity):
            return value
        lowered = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == lowered or member.name.lower() == lowered:
                return member
        raise ValueError(f"unknown severity '{value}' (expected one of High, Medium, Low, Gas, NC)")


_SEVERITY_RANK = {
    Severity.HIGH: 4,
    Severity.MEDIUM: 3,
    Severity.LOW: 2,
    Severity.GAS: 1,
    Severity.NC: 0,
}


@dataclass(frozen=True, order=True)
class Position:
    """A point in a source file: 1-based line, 0-based column."""

    line: int
    column: int


@dataclass(frozen=True, order=True)
class Span:
    start: Position
    end: Position

    @classmethod
    def from_points(cls, start_point: tuple[int, int], end_point: tuple[int, int]) -> Span:
        """Build a span from tree-sitter (row, column) points, which are 0-based."""
        return cls(
            Position(start_point[0] + 1, start_point[1]),
            Position(end_point[0] + 1, end_point[1]),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line": self.start.line,
            "start_column": self.start.column,
            "end_line": self.end.line,
            "end_column": self.end.column,
        }


@dataclass(frozen=True)
class Finding:
    """A single detector match at a concrete location."""

    detector_id: str
    severity: Severity
    file: str
    span: Span
    message: str
    snippet: Optional[str] = None
    fix: Optional[str] = None

    def sort_key(self) -> tuple:
        return (
            -self.severity.rank,
            self.file,
            self.span.start,
            self.span.end,
            self.detector_id,
            self.message,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "detector": self.detector_id,
            "severity": self.severity.value,
            "file": self.file,
            **self.span.to_dict(),
            "message": self.message,
        }
        if self.snippet is not None:
            data["snippet"] = self.snippet
        if self.fix is not None:
            data["fix"] = self.fix
        return data


class DiagnosticKind(Enum):
    """Non-finding problems encountered during analysis, with stable codes."""

    PARSE_FAILURE = ("SS100", "ParseFailure")
    UNRESOLVED_IMPORT = ("SS200", "UnresolvedImport")
    DUPLICATE_DECLARATION = ("SS300", "DuplicateDeclaration")
    UNRESOLVED_REFERENCE = ("SS301", "UnresolvedReference")
    CYCLIC_INHERITANCE = ("SS400", "CyclicInheritance")
    LINEARIZATION_CONFLICT = ("SS401", "LinearizationConflict")
    DETECTOR_FAILURE = ("SS500", "DetectorFailure")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def label(self) -> str:
        return self.value[1]


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    file: Optional[str] = None
    line: Optional[int] = None
    related: tuple[str, ...] = ()

    def sort_key(self) -> tuple:
        return (self.file or "", self.line or 0, self.kind.code, self.message, self.related)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.kind.code,
            "kind": self.kind.label,
            "message": self.message,
        }
        if self.file is not None:
            data["file"] = self.file
        if self.line is not None:
            data["line"] = self.line
        if self.related:
            data["related"] = list(self.related)
        return data


@dataclass(frozen=True)
class Report:
    """Merged, canonically ordered output of one analysis run."""

    findings: tuple[Finding, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    files_analyzed: int = 0
    detectors_run: int = 0

    @classmethod
    def build(
        cls,
        findings: Iterable[Finding],
        diagnostics: Iterable[Diagnostic],
        files_analyzed: int = 0,
        detectors_run: int = 0,
    ) -> Report:
        """Sort findings and diagnostics into their canonical order."""
        return cls(
            findings=tuple(sorted(findings, key=Finding.sort_key)),
            diagnostics=tuple(sorted(set(diagnostics), key=Diagnostic.sort_key)),
            files_analyzed=files_analyzed,
            detectors_run=detectors_run,
        )

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind is kind]

    def findings_for(self, detector_id: str) -> list[Finding]:
        return [f for f in self.findings if f.detector_id == detector_id]

    def severity_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "files_analyzed": self.files_analyzed,
                "detectors_run": self.detectors_run,
                "findings": len(self.findings),
                "by_severity": self.severity_counts(),
                "diagnostics": len(self.diagnostics),
            },
            "findings": [f.to_dict() for f in self.findings],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)
