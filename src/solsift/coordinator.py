"""Three-stage analysis pipeline.

Stage A loads and parses the scope in parallel. Stage B is a barrier: the
import closure, symbol table and linearizations are built on the
coordinating thread and frozen. Stage C runs the dispatch engine over each
in-scope file in parallel against that read-only state. Results are merged
and re-sorted, so the report never depends on completion order.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from .config import AnalysisConfig
from .detection import AnalysisContext, DetectorRegistry, DispatchEngine, FileResult
from .exceptions import InvalidConfigError, ScopeError
from .logging_config import get_logger
from .models import Diagnostic, DiagnosticKind, Report
from .resolution import (
    ImportClosure,
    ImportResolver,
    InheritanceGraph,
    LinearizationCache,
    RemappingOrigin,
    RemappingTable,
    SymbolTable,
    build_closure,
    build_symbol_table,
    detect_project,
    find_project_root,
)
from .resolution.project import default_scope
from .resolution.remappings import parse_remappings
from .scanning import SourceFile, SourceLoader

logger = get_logger(__name__)

_DEFAULT_WORKERS = min(os.cpu_count() or 4, 8)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ResolvedState:
    """Everything Stage B produces; read-only once Stage C starts."""

    closure: ImportClosure
    symbols: SymbolTable
    linearizations: LinearizationCache
    diagnostics: list[Diagnostic]


class ParallelCoordinator:
    """Runs one analysis over a bounded thread pool."""

    def __init__(self, config: AnalysisConfig, registry: DetectorRegistry):
        self.config = config
        self.registry = registry
        self.workers = config.workers or _DEFAULT_WORKERS
        self.root = self._project_root()
        self.layout = detect_project(self.root)
        self.loader = SourceLoader(self.root)

    def run(self) -> Report:
        """
        Analyse the configured scope.

        Returns:
            Report with canonically ordered findings and diagnostics

        Raises:
            ScopeError: If the scope is missing, empty or entirely unreadable
        """
        logger.info(f"Analysing {self.root} ({self.layout.kind.value} project, {self.workers} workers)")

        # Stage A
        paths = self.loader.discover(self._scope(), self.config.exclude)
        sources = self._map(self.loader.load, paths)
        if all(source.tree is None for source in sources):
            raise ScopeError("no readable Solidity files in scope", paths)

        # Stage B
        state = self._resolve(sources)

        # Stage C
        enabled = self.registry.select(self.config)
        engine = DispatchEngine(self.registry.dispatch_table(enabled))
        targets = [s for s in state.closure.ordered() if s.in_scope and s.parsed]

        def detect(source: SourceFile) -> FileResult:
            ctx = AnalysisContext(
                file=source,
                symbols=state.symbols,
                linearizations=state.linearizations,
                unresolved_imports=state.closure.has_unresolved_imports(source),
            )
            return engine.run(ctx)

        results = self._map(detect, targets)
        findings = [finding for result in results for finding in result.findings]
        diagnostics = state.diagnostics + [d for result in results for d in result.diagnostics]

        report = Report.build(
            findings,
            diagnostics,
            files_analyzed=len(targets),
            detectors_run=len(enabled),
        )
        logger.info(
            f"Analysis complete: {len(report.findings)} findings, "
            f"{len(report.diagnostics)} diagnostics in {report.files_analyzed} files"
        )
        return report

    def _resolve(self, sources: Sequence[SourceFile]) -> ResolvedState:
        resolver = ImportResolver(self.root, self._remappings(), self.layout.library_paths)

        def load_imported(paths: Sequence[Path]) -> list[SourceFile]:
            return self._map(lambda path: self.loader.load(path, in_scope=False), paths)

        closure = build_closure(sources, resolver, load_imported)
        diagnostics = [_parse_failure(source) for source in closure.ordered() if not source.parsed]
        diagnostics.extend(closure.diagnostics)

        symbols, duplicates = build_symbol_table(s for s in closure.ordered() if s.parsed)
        diagnostics.extend(duplicates)

        graph = InheritanceGraph(symbols)
        diagnostics.extend(graph.diagnostics)
        linearizations = LinearizationCache(graph)
        diagnostics.extend(linearizations.freeze())

        logger.info(f"Resolved {len(symbols)} declarations across {len(closure.files)} files")
        return ResolvedState(closure, symbols, linearizations, diagnostics)

    def _remappings(self) -> RemappingTable:
        try:
            explicit = parse_remappings(self.config.remappings, self.root, RemappingOrigin.EXPLICIT)
            configured = parse_remappings(self.config.config_remappings, self.root, RemappingOrigin.CONFIG)
        except ValueError as e:
            raise InvalidConfigError("remappings", self.config.remappings + self.config.config_remappings, str(e))
        return RemappingTable([*explicit, *configured, *self.layout.remappings])

    def _project_root(self) -> Path:
        if self.config.root is not None:
            return Path(self.config.root).resolve()
        if self.config.scope:
            return find_project_root(Path(self.config.scope[0]).resolve())
        return find_project_root(Path.cwd())

    def _scope(self) -> list[Path]:
        if self.config.scope and self.config.root is None:
            # Without an explicit root, scope entries are relative to the cwd.
            return [Path(entry).resolve() for entry in self.config.scope]
        if self.config.scope:
            return [Path(entry) for entry in self.config.scope]
        return [default_scope(self.layout) or self.root]

    def _map(self, fn: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """Apply ``fn`` to each item, preserving input order."""
        items = list(items)
        if self.workers == 1 or len(items) < 2:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=min(self.workers, len(items))) as executor:
            return list(executor.map(fn, items))


def _parse_failure(source: SourceFile) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.PARSE_FAILURE,
        message=f"cannot parse {source.display_path}: {source.parse_error}",
        file=source.display_path,
        line=source.error_line,
    )


def run_analysis(config: AnalysisConfig, registry: DetectorRegistry) -> Report:
    return ParallelCoordinator(config, registry).run()


__all__ = ["ParallelCoordinator", "ResolvedState", "run_analysis"]
