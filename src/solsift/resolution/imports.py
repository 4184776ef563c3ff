"""Import resolution and transitive closure of the working set."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from ..logging_config import get_logger
from ..models import Diagnostic, DiagnosticKind
from ..scanning.models import ImportStatement, SourceFile
from .remappings import RemappingTable

logger = get_logger(__name__)

# Loads a batch of newly discovered files, possibly in parallel.
BatchLoader = Callable[[Sequence[Path]], list[SourceFile]]


class ImportResolver:
    """Maps an import string to a file on disk.

    Resolution order:
        1. ``./`` and ``../`` paths, relative to the importing file
        2. remappings, best match first; a rule whose target is missing
           falls through to the next one
        3. library search paths
        4. the project root
    """

    def __init__(
        self, root: Path, remappings: RemappingTable, library_paths: Iterable[Path] = ()
    ):
        self.root = Path(root)
        self.remappings = remappings
        self.library_paths = tuple(library_paths)

    def resolve(self, import_path: str, importer: Path) -> Optional[Path]:
        for candidate in self.candidates(import_path, importer):
            if candidate.is_file():
                return candidate.resolve()
        return None

    def candidates(self, import_path: str, importer: Path) -> list[Path]:
        if import_path.startswith(("./", "../")):
            return [importer.parent / import_path]
        result = self.remappings.candidates(import_path)
        result.extend(lib / import_path for lib in self.library_paths)
        result.append(self.root / import_path)
        return result


@dataclass
class ImportClosure:
    """The working set after following imports to a fixpoint.

    ``edges`` maps each file to the files its imports resolved to;
    ``unresolved`` maps a file's display path to the import strings that
    could not be used.
    """

    files: dict[Path, SourceFile] = field(default_factory=dict)
    edges: dict[Path, tuple[Path, ...]] = field(default_factory=dict)
    unresolved: dict[str, tuple[str, ...]] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def has_unresolved_imports(self, source: SourceFile) -> bool:
        return source.display_path in self.unresolved

    def ordered(self) -> list[SourceFile]:
        return sorted(self.files.values(), key=lambda s: s.display_path)


def build_closure(
    initial: Iterable[SourceFile], resolver: ImportResolver, load_batch: BatchLoader
) -> ImportClosure:
    """
    Follow imports from the initial files until no new file appears.

    Each round resolves the imports of the newest files, then loads all
    newly referenced files as one batch. Files are keyed by resolved path,
    so import cycles terminate.

    Args:
        initial: Files discovered in scope (already loaded)
        resolver: Import resolver for the project
        load_batch: Loads out-of-scope files discovered through imports

    Returns:
        ImportClosure with every reachable file, its edges and diagnostics
    """
    closure = ImportClosure()
    frontier: list[SourceFile] = []
    for source in initial:
        closure.files[source.path] = source
        frontier.append(source)

    rounds = 0
    while frontier:
        rounds += 1
        pending: dict[Path, list[tuple[SourceFile, ImportStatement]]] = {}
        for source in sorted(frontier, key=lambda s: s.display_path):
            targets: list[Path] = []
            for statement in source.imports:
                target = resolver.resolve(statement.path, source.path)
                if target is None:
                    _unresolved(closure, source, statement, "file not found")
                    continue
                targets.append(target)
                if target not in closure.files:
                    pending.setdefault(target, []).append((source, statement))
            closure.edges[source.path] = tuple(dict.fromkeys(targets))

        new_paths = sorted(pending)
        loaded = load_batch(new_paths) if new_paths else []
        for loaded_file in loaded:
            closure.files[loaded_file.path] = loaded_file
        frontier = [f for f in loaded if f.parsed]
        logger.debug(f"Import round {rounds}: {len(new_paths)} new files")

    # Drop edges to files that turned out unusable.
    for source in list(closure.files.values()):
        kept: list[Path] = []
        for target in closure.edges.get(source.path, ()):
            target_file = closure.files.get(target)
            if target_file is not None and target_file.parsed:
                kept.append(target)
                continue
            for statement in source.imports:
                if resolver.resolve(statement.path, source.path) == target:
                    _unresolved(closure, source, statement, "imported file failed to parse")
        if source.path in closure.edges:
            closure.edges[source.path] = tuple(kept)

    logger.info(
        f"Import closure: {len(closure.files)} files after {rounds} rounds, "
        f"{sum(len(v) for v in closure.unresolved.values())} unresolved imports"
    )
    return closure


def _unresolved(closure: ImportClosure, source: SourceFile, statement: ImportStatement, reason: str) -> None:
    previous = closure.unresolved.get(source.display_path, ())
    closure.unresolved[source.display_path] = previous + (statement.path,)
    closure.diagnostics.append(
        Diagnostic(
            kind=DiagnosticKind.UNRESOLVED_IMPORT,
            message=f"cannot resolve import '{statement.path}': {reason}",
            file=source.display_path,
            line=statement.span.start.line,
            related=(statement.path,),
        )
    )
