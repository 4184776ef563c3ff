"""Compiler version requirements from ``pragma solidity``.

A requirement is kept as written, normalized to single spaces, for example
``^0.8.18``, ``>=0.8.0 <0.9.0`` or ``~0.8.4 || >=0.8.10``. Detectors whose
advice only applies to newer compilers ask ``targets_at_least`` whether the
file's pragma reaches a given release.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from tree_sitter import Node

from .extractor import text_of

Version = tuple[int, int, int]

_VERSION = re.compile(r"\d+(\.\d+){0,2}")
_COMPARATOR = re.compile(r"(\^|~|>=|<=|>|<|=)?\s*(\S+)")

# Operators that keep the requirement close to one release line.
_PINNING = frozenset({"^", "~", "=", ""})


def parse_version(value: str) -> Optional[Version]:
    """``0.8`` becomes ``(0, 8, 0)``; anything but digits and dots is rejected."""
    value = value.strip()
    if not _VERSION.fullmatch(value):
        return None
    parts = [int(p) for p in value.split(".")]
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


@dataclass(frozen=True)
class VersionRange:
    """The releases one ``||`` alternative of a requirement admits."""

    low: Optional[Version] = None
    low_inclusive: bool = True
    high: Optional[Version] = None
    high_inclusive: bool = False
    pinned: bool = False

    def admits(self, version: Version) -> bool:
        if self.low is not None:
            if version < self.low or (version == self.low and not self.low_inclusive):
                return False
        if self.high is not None:
            if version > self.high or (version == self.high and not self.high_inclusive):
                return False
        return True

    def restrict(self, operator: str, version: Version) -> VersionRange:
        """Intersect with one comparator."""
        low, low_inclusive = self.low, self.low_inclusive
        high, high_inclusive = self.high, self.high_inclusive
        if operator in ("^", "~", "=", "", ">=", ">"):
            if low is None or version > low:
                low, low_inclusive = version, operator != ">"
            elif version == low:
                low_inclusive = low_inclusive and operator != ">"
        if operator == "^":
            major, minor, patch = version
            if major:
                bound = (major + 1, 0, 0)
            elif minor:
                bound = (0, minor + 1, 0)
            else:
                bound = (0, 0, patch + 1)
            high, high_inclusive = _lower_high(high, high_inclusive, bound, False)
        elif operator == "~":
            high, high_inclusive = _lower_high(high, high_inclusive, (version[0], version[1] + 1, 0), False)
        elif operator in ("=", ""):
            high, high_inclusive = _lower_high(high, high_inclusive, version, True)
        elif operator in ("<=", "<"):
            high, high_inclusive = _lower_high(high, high_inclusive, version, operator == "<=")
        return VersionRange(
            low=low,
            low_inclusive=low_inclusive,
            high=high,
            high_inclusive=high_inclusive,
            pinned=self.pinned or operator in _PINNING,
        )


def _lower_high(
    high: Optional[Version], inclusive: bool, bound: Version, bound_inclusive: bool
) -> tuple[Optional[Version], bool]:
    if high is None or bound < high or (bound == high and not bound_inclusive):
        return bound, bound_inclusive
    return high, inclusive


def parse_requirement(requirement: str) -> list[VersionRange]:
    """One range per ``||`` alternative. Unparseable alternatives are dropped."""
    ranges = []
    for alternative in requirement.split("||"):
        current = VersionRange()
        valid = bool(alternative.strip())
        for match in _COMPARATOR.finditer(alternative):
            operator, raw = match.group(1) or "", match.group(2)
            version = parse_version(raw)
            if version is None:
                valid = False
                break
            current = current.restrict(operator, version)
        if valid:
            ranges.append(current)
    return ranges


def targets_at_least(requirement: Optional[str], minimum: str) -> bool:
    """
    True when a file's pragma targets ``minimum`` or a later compiler.

    A caret, tilde or exact pragma must start at ``minimum`` or later. An
    open range such as ``>=0.8.0 <0.9.0`` qualifies when it admits
    ``minimum`` or starts above it. Files without a pragma never qualify.
    """
    wanted = parse_version(minimum)
    if requirement is None or wanted is None:
        return False
    for candidate in parse_requirement(requirement):
        starts_late = candidate.low is not None and candidate.low >= wanted
        if starts_late or (not candidate.pinned and candidate.admits(wanted)):
            return True
    return False


def extract_solidity_version(root: Node) -> Optional[str]:
    """Requirement text of the first ``pragma solidity`` in a file."""
    for directive in root.named_children:
        if directive.type != "pragma_directive":
            continue
        for token in directive.named_children:
            if token.type != "solidity_pragma_token":
                continue
            parts: list[str] = []
            operator = ""
            for child in token.children:
                if child.type == "solidity_version_comparison_operator":
                    operator = text_of(child).strip()
                elif child.type == "solidity_version":
                    parts.append(operator + text_of(child).strip())
                    operator = ""
                elif child.type == "||":
                    parts.append("||")
            if parts:
                return " ".join(parts)
    return None
