"""Project-wide symbol table.

Declarations live in one arena and are referred to by integer handles.
A handle is an index into ``SymbolTable.declarations`` and stays valid for
the lifetime of the table.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from ..logging_config import get_logger
from ..models import Diagnostic, DiagnosticKind
from ..scanning.models import Declaration, SourceFile

logger = get_logger(__name__)


class SymbolTable:
    """Immutable arena of declarations with name and location indexes."""

    def __init__(
        self,
        declarations: Iterable[Declaration],
        aliases: Optional[Mapping[str, Mapping[str, str]]] = None,
        unit_aliases: Optional[Mapping[str, frozenset[str]]] = None,
    ):
        self.declarations: tuple[Declaration, ...] = tuple(declarations)
        index: dict[tuple[str, str], int] = {}
        locations: dict[tuple[str, int], int] = {}
        for handle, decl in enumerate(self.declarations):
            index.setdefault((decl.scope, decl.name), handle)
            locations[(decl.file, decl.start_byte)] = handle
        self._index = MappingProxyType(index)
        self._locations = MappingProxyType(locations)
        self._aliases = MappingProxyType(dict(aliases or {}))
        self._unit_aliases = MappingProxyType(dict(unit_aliases or {}))

    def __len__(self) -> int:
        return len(self.declarations)

    def __getitem__(self, handle: int) -> Declaration:
        return self.declarations[handle]

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self.declarations)

    def lookup(self, name: str, scope: str = "") -> Optional[int]:
        return self._index.get((scope, name))

    def handle_at(self, file: str, start_byte: int) -> Optional[int]:
        """Handle of the declaration whose node starts at ``start_byte`` in ``file``."""
        return self._locations.get((file, start_byte))

    def inheritable_handles(self) -> list[int]:
        return [h for h, decl in enumerate(self.declarations) if decl.kind.inheritable]

    def resolve(self, name: str, from_file: str) -> Optional[int]:
        """
        Resolve a name as written in ``from_file``.

        Applies the file's import aliases (``{A as B}`` and unit aliases
        ``U.A``), then tries a contract-scoped lookup for ``C.S`` and
        finally the last path segment at file level.
        """
        parts = name.split(".")
        if len(parts) > 1 and parts[0] in self._unit_aliases.get(from_file, frozenset()):
            parts = parts[1:]
        renamed = self._aliases.get(from_file, {})
        parts[0] = renamed.get(parts[0], parts[0])

        if len(parts) == 1:
            return self.lookup(parts[0])
        scoped = self.lookup(parts[-1], scope=parts[-2])
        if scoped is not None:
            return scoped
        return self.lookup(parts[-1])


def build_symbol_table(files: Iterable[SourceFile]) -> tuple[SymbolTable, list[Diagnostic]]:
    """
    Merge the declarations of every parsed file into one table.

    Files are processed in display-path order; when two declarations share
    a name within a scope the first one wins and the later one is reported
    as a DuplicateDeclaration.

    Returns:
        (table, diagnostics)
    """
    accepted: list[Declaration] = []
    seen: dict[tuple[str, str], Declaration] = {}
    aliases: dict[str, dict[str, str]] = {}
    unit_aliases: dict[str, frozenset[str]] = {}
    diagnostics: list[Diagnostic] = []

    for source in sorted(files, key=lambda s: s.display_path):
        if not source.parsed:
            continue
        renamed = {
            symbol.alias: symbol.name
            for statement in source.imports
            for symbol in statement.symbols
            if symbol.alias
        }
        if renamed:
            aliases[source.display_path] = renamed
        units = frozenset(s.unit_alias for s in source.imports if s.unit_alias)
        if units:
            unit_aliases[source.display_path] = units

        for decl in source.declarations:
            key = (decl.scope, decl.name)
            first = seen.get(key)
            if first is not None:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.DUPLICATE_DECLARATION,
                        message=(
                            f"{decl.kind.value} {decl.qualified_name} already declared "
                            f"in {first.file}:{first.span.start.line}"
                        ),
                        file=decl.file,
                        line=decl.span.start.line,
                        related=(decl.qualified_name,),
                    )
                )
                continue
            seen[key] = decl
            accepted.append(decl)

    logger.debug(f"Symbol table: {len(accepted)} declarations, {len(diagnostics)} duplicates")
    return SymbolTable(accepted, aliases, unit_aliases), diagnostics
