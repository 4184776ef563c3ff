"""Import remapping rules.

A remapping ``prefix=target`` rewrites an import path that starts with
``prefix``. When several rules match, the longest prefix wins; equal
prefixes fall back to origin priority (explicit > config file >
auto-detected) and then to the order the rules were given in.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Iterable, Iterator


class RemappingOrigin(IntEnum):
    AUTO = 0
    CONFIG = 1
    EXPLICIT = 2


@dataclass(frozen=True)
class Remapping:
    prefix: str
    target: Path
    origin: RemappingOrigin
    order: int = 0

    def apply(self, import_path: str) -> Path:
        suffix = import_path[len(self.prefix):]
        return self.target / suffix if suffix else self.target

    def __str__(self) -> str:
        return f"{self.prefix}={self.target}"


def parse_remapping(text: str, root: Path, origin: RemappingOrigin, order: int = 0) -> Remapping:
    """Parse ``[context:]prefix=target``; relative targets are joined to ``root``.

    Raises:
        ValueError: If the text has no ``=`` or an empty prefix
    """
    rule, sep, target = text.strip().partition("=")
    if not sep:
        raise ValueError(f"remapping '{text}' must have the form prefix=target")
    # Context-scoped rules ("ctx:prefix=target") apply project-wide here.
    _, colon, prefix = rule.rpartition(":")
    if not colon:
        prefix = rule
    prefix = prefix.strip()
    if not prefix:
        raise ValueError(f"remapping '{text}' has an empty prefix")
    target_path = Path(target.strip())
    if not target_path.is_absolute():
        target_path = root / target_path
    return Remapping(prefix=prefix, target=target_path, origin=origin, order=order)


def parse_remappings(
    lines: Iterable[str], root: Path, origin: RemappingOrigin, start: int = 0
) -> list[Remapping]:
    """Parse many rules, skipping blank lines and ``#`` comments."""
    result = []
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        result.append(parse_remapping(stripped, root, origin, start + len(result)))
    return result


class RemappingTable:
    """Ordered, immutable collection of remappings."""

    def __init__(self, remappings: Iterable[Remapping] = ()):
        self._rules = tuple(
            sorted(remappings, key=lambda r: (-len(r.prefix), -int(r.origin), r.order))
        )

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Remapping]:
        return iter(self._rules)

    def matching(self, import_path: str) -> list[Remapping]:
        """Rules whose prefix matches, best first."""
        return [rule for rule in self._rules if import_path.startswith(rule.prefix)]

    def candidates(self, import_path: str) -> list[Path]:
        """Every rewritten path for ``import_path``, best first."""
        return [rule.apply(import_path) for rule in self.matching(import_path)]
