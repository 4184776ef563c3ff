"""Visitor dispatch engine: one traversal per file, many detectors per node."""

from __future__ import annotations

from dataclasses import dataclass, field

from tree_sitter import Node

from ..exceptions import DetectorError
from ..logging_config import get_logger
from ..models import Diagnostic, DiagnosticKind, Finding, Span
from .context import AnalysisContext
from .registry import DetectorSpec, DispatchTable, Match

logger = get_logger(__name__)


@dataclass
class FileResult:
    """Findings and diagnostics accumulated for one file."""

    file: str
    findings: list[Finding] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    nodes_visited: int = 0


class DispatchEngine:
    """Walks a syntax tree once and multiplexes every interested detector.

    The walk is iterative and depth-first over named nodes; each stack
    entry carries the context for its subtree, so entering a contract or
    function never mutates shared state.
    """

    def __init__(self, table: DispatchTable):
        self.table = table

    def run(self, ctx: AnalysisContext) -> FileResult:
        source = ctx.file
        result = FileResult(file=source.display_path)
        if source.tree is None or not source.parsed:
            return result

        stack: list[tuple[Node, AnalysisContext]] = [(source.tree.root_node, ctx)]
        while stack:
            node, outer = stack.pop()
            inner = outer.enter(node)
            result.nodes_visited += 1

            specs = self.table.get(node.type)
            if specs:
                for spec in specs:
                    if self._runnable(spec, inner):
                        self._dispatch(spec, node, inner, result)

            children = node.named_children
            for child in reversed(children):
                stack.append((child, inner))

        logger.debug(
            f"Visited {result.nodes_visited} nodes in {source.display_path}: "
            f"{len(result.findings)} findings"
        )
        return result

    @staticmethod
    def _runnable(spec: DetectorSpec, ctx: AnalysisContext) -> bool:
        if spec.requires_linearization and ctx.linearization is None:
            return False
        if spec.requires_symbols and ctx.unresolved_imports:
            return False
        return True

    def _dispatch(self, spec: DetectorSpec, node: Node, ctx: AnalysisContext, result: FileResult) -> None:
        try:
            matches = list(spec.check(node, ctx))
        except Exception as e:
            error = DetectorError(spec.id, node.type, f"{type(e).__name__}: {e}")
            logger.debug(f"{error} in {result.file}", exc_info=True)
            result.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.DETECTOR_FAILURE,
                    message=f"{error.message}: {error.reason}",
                    file=result.file,
                    line=node.start_point[0] + 1,
                    related=(spec.id,),
                )
            )
            return
        for match in matches:
            result.findings.append(self._finding(spec, node, match, ctx))

    @staticmethod
    def _finding(spec: DetectorSpec, node: Node, match: Match, ctx: AnalysisContext) -> Finding:
        target = match.node if match.node is not None else node
        span = match.span or Span.from_points(target.start_point, target.end_point)
        snippet = ctx.file.line(span.start.line).strip() or None
        return Finding(
            detector_id=spec.id,
            severity=spec.severity,
            file=ctx.file.display_path,
            span=span,
            message=match.message or spec.title,
            snippet=snippet,
            fix=spec.fix,
        )
