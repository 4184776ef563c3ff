"""Project layout detection for Foundry, Hardhat and Truffle projects."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..exceptions import InvalidConfigError
from ..logging_config import get_logger
from .remappings import Remapping, RemappingOrigin, parse_remappings

logger = get_logger(__name__)


class ProjectKind(Enum):
    FOUNDRY = "foundry"
    HARDHAT = "hardhat"
    TRUFFLE = "truffle"
    CUSTOM = "custom"


_MARKERS = (
    ("foundry.toml", ProjectKind.FOUNDRY),
    ("hardhat.config.js", ProjectKind.HARDHAT),
    ("hardhat.config.ts", ProjectKind.HARDHAT),
    ("truffle-config.js", ProjectKind.TRUFFLE),
)

# Conventional install locations of common libraries under lib/.
_DEFAULT_REMAPPINGS = (
    ("@openzeppelin/", "lib/openzeppelin-contracts/"),
    ("@solmate/", "lib/solmate/src/"),
    ("ds-test/", "lib/ds-test/src/"),
    ("forge-std/", "lib/forge-std/src/"),
)


@dataclass(frozen=True)
class ProjectLayout:
    """Where sources and libraries live, and which remappings the project declares."""

    root: Path
    kind: ProjectKind
    src: str = "src"
    libs: tuple[str, ...] = ("lib", "node_modules")
    remappings: tuple[Remapping, ...] = field(default=())

    @property
    def library_paths(self) -> tuple[Path, ...]:
        return tuple(self.root / lib for lib in self.libs)


def find_project_root(start: Path) -> Path:
    """Walk up from ``start`` to the nearest directory holding a project marker.

    Falls back to ``start`` itself (or its directory for a file).
    """
    start = Path(start).resolve()
    base = start if start.is_dir() else start.parent
    for candidate in (base, *base.parents):
        if any((candidate / marker).is_file() for marker, _ in _MARKERS):
            return candidate
    return base


def detect_project(root: Path) -> ProjectLayout:
    """Inspect ``root`` and describe the project's layout."""
    root = Path(root).resolve()
    kind = ProjectKind.CUSTOM
    for marker, marker_kind in _MARKERS:
        if (root / marker).is_file():
            kind = marker_kind
            break

    if kind is ProjectKind.FOUNDRY:
        layout = _foundry_layout(root)
    elif kind is ProjectKind.HARDHAT:
        layout = _node_layout(root, kind, "contracts")
    elif kind is ProjectKind.TRUFFLE:
        layout = _node_layout(root, kind, "contracts")
    else:
        layout = ProjectLayout(root=root, kind=kind, remappings=tuple(_auto_remappings(root)))

    logger.info(f"Detected {layout.kind.value} project at {root} ({len(layout.remappings)} remappings)")
    return layout


def _foundry_layout(root: Path) -> ProjectLayout:
    try:
        with open(root / "foundry.toml", "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise InvalidConfigError("foundry.toml", str(root / "foundry.toml"), str(e))

    profile = data.get("profile", {}).get("default", {})
    declared = [*data.get("remappings", []), *profile.get("remappings", [])]
    remappings = _remappings_txt(root)
    try:
        remappings += parse_remappings(declared, root, RemappingOrigin.CONFIG, start=len(remappings))
    except ValueError as e:
        raise InvalidConfigError("foundry.toml", str(root / "foundry.toml"), str(e))
    remappings += _auto_remappings(root)
    libs = tuple(profile.get("libs", ("lib",)))
    return ProjectLayout(
        root=root,
        kind=ProjectKind.FOUNDRY,
        src=str(profile.get("src", "src")),
        libs=libs,
        remappings=tuple(remappings),
    )


def _node_layout(root: Path, kind: ProjectKind, src: str) -> ProjectLayout:
    remappings: list[Remapping] = []
    if (root / "node_modules" / "@openzeppelin").is_dir():
        remappings.append(
            Remapping("@openzeppelin/", root / "node_modules" / "@openzeppelin", RemappingOrigin.AUTO)
        )
    return ProjectLayout(
        root=root, kind=kind, src=src, libs=("node_modules",), remappings=tuple(remappings)
    )


def _remappings_txt(root: Path) -> list[Remapping]:
    path = root / "remappings.txt"
    if not path.is_file():
        return []
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
        return parse_remappings(lines, root, RemappingOrigin.CONFIG)
    except (OSError, ValueError) as e:
        raise InvalidConfigError("remappings.txt", str(path), str(e))


def _auto_remappings(root: Path) -> list[Remapping]:
    result = []
    for order, (prefix, target) in enumerate(_DEFAULT_REMAPPINGS):
        target_path = root / target
        if target_path.is_dir():
            result.append(Remapping(prefix, target_path, RemappingOrigin.AUTO, order))
    return result


def default_scope(layout: ProjectLayout) -> Optional[Path]:
    """The project's conventional source directory, if it exists."""
    candidate = layout.root / layout.src
    return candidate if candidate.is_dir() else None
