"""Source discovery and loading.

Discovery turns the configured scope into a sorted list of ``.sol`` files.
Loading reads and parses one file; read and parse failures are recorded on
the returned ``SourceFile`` rather than raised, so one bad file never stops
the run.
"""

from __future__ import annotations

import fnmatch
import threading
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..exceptions import FileAccessError, ParsingError, ScopeError
from ..logging_config import get_logger
from .extractor import extract_declarations, extract_imports
from .models import SourceFile
from .parser import SolidityParser, first_error
from .versions import extract_solidity_version

logger = get_logger(__name__)

SOLIDITY_SUFFIX = ".sol"

# Never descend into these while walking a directory scope.
_SKIP_DIRS = {"node_modules", ".git", "cache", "out", "artifacts"}

_GLOB_CHARS = set("*?[")


def display_path(path: Path, root: Path) -> str:
    """POSIX path relative to the project root, absolute if outside it."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


class SourceLoader:
    """Discovers and loads Solidity sources below a project root."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self._local = threading.local()

    def discover(self, scope: Sequence[Path], exclude: Iterable[str] = ()) -> list[Path]:
        """
        Expand scope entries into a sorted, de-duplicated list of files.

        Args:
            scope: Files or directories; relative entries are taken from the root
            exclude: Paths (excluding their whole subtree) or glob patterns

        Returns:
            Absolute paths of every in-scope ``.sol`` file

        Raises:
            ScopeError: If a scope entry does not exist or nothing is found
        """
        excluded_paths, excluded_globs = self._split_excludes(exclude)
        found: set[Path] = set()
        missing: list[Path] = []
        files_skipped = 0

        for entry in scope:
            path = entry if entry.is_absolute() else self.root / entry
            path = path.resolve()
            if not path.exists():
                missing.append(path)
                continue
            candidates = [path] if path.is_file() else self._walk(path)
            for candidate in candidates:
                if candidate.suffix != SOLIDITY_SUFFIX:
                    continue
                if self._is_excluded(candidate, excluded_paths, excluded_globs):
                    files_skipped += 1
                    logger.debug(f"Skipped (excluded): {candidate}")
                    continue
                found.add(candidate)

        if missing:
            raise ScopeError("scope path does not exist", missing)
        if not found:
            raise ScopeError("no Solidity files in scope", [Path(p) for p in scope])

        logger.info(f"Discovered {len(found)} Solidity files ({files_skipped} excluded)")
        return sorted(found)

    def load(self, path: Path, in_scope: bool = True) -> SourceFile:
        """Read, parse and outline one file. Never raises for per-file problems."""
        shown = display_path(path, self.root)
        try:
            source = self._read(path)
        except FileAccessError as e:
            logger.warning(f"Access error for {shown}: {e.reason}")
            return SourceFile(path=path, display_path=shown, source=b"", parse_error=e.reason, in_scope=in_scope)

        lines = tuple(source.decode("utf-8", errors="replace").splitlines())
        tree = self._parser().parse(source)
        try:
            self._check(path, tree.root_node)
        except ParsingError as e:
            logger.warning(f"Parse error for {shown}: {e.reason}")
            return SourceFile(
                path=path,
                display_path=shown,
                source=source,
                tree=tree,
                parse_error=e.reason,
                error_line=e.line,
                in_scope=in_scope,
                lines=lines,
            )

        root_node = tree.root_node
        logger.debug(f"Parsed: {shown}")
        return SourceFile(
            path=path,
            display_path=shown,
            source=source,
            tree=tree,
            imports=extract_imports(root_node),
            declarations=extract_declarations(root_node, shown),
            solidity_version=extract_solidity_version(root_node),
            in_scope=in_scope,
            lines=lines,
        )

    def _parser(self) -> SolidityParser:
        parser: Optional[SolidityParser] = getattr(self._local, "parser", None)
        if parser is None:
            parser = SolidityParser()
            self._local.parser = parser
        return parser

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise FileAccessError(path, e.strerror or str(e))

    @staticmethod
    def _check(path: Path, root_node) -> None:
        error = first_error(root_node)
        if error is not None:
            line, reason = error
            raise ParsingError(path, f"line {line}: {reason}", line)

    def _walk(self, directory: Path) -> list[Path]:
        result: list[Path] = []
        stack = [directory]
        while stack:
            current = stack.pop()
            try:
                entries = sorted(current.iterdir())
            except OSError as e:
                logger.warning(f"Cannot list {current}: {e}")
                continue
            for entry in entries:
                if entry.is_dir():
                    if entry.name.startswith(".") or entry.name in _SKIP_DIRS:
                        continue
                    stack.append(entry)
                elif entry.is_file():
                    result.append(entry.resolve())
        return result

    def _split_excludes(self, exclude: Iterable[str]) -> tuple[list[Path], list[str]]:
        paths: list[Path] = []
        globs: list[str] = []
        for entry in exclude:
            if _GLOB_CHARS & set(entry):
                globs.append(entry)
            else:
                path = Path(entry)
                paths.append((path if path.is_absolute() else self.root / path).resolve())
        return paths, globs

    def _is_excluded(self, path: Path, excluded_paths: list[Path], excluded_globs: list[str]) -> bool:
        for excluded in excluded_paths:
            if path == excluded or excluded in path.parents:
                return True
        shown = display_path(path, self.root)
        return any(fnmatch.fnmatch(shown, pattern) for pattern in excluded_globs)
