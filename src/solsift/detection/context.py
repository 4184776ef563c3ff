"""Per-file, read-only view handed to every detector check."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from tree_sitter import Node

from ..resolution.linearization import LinearizationCache
from ..resolution.symbols import SymbolTable
from ..scanning.models import Declaration, SourceFile

CONTRACT_KINDS = frozenset({"contract_declaration", "interface_declaration", "library_declaration"})
FUNCTION_KINDS = frozenset(
    {
        "function_definition",
        "modifier_definition",
        "constructor_definition",
        "fallback_receive_definition",
    }
)
LOOP_KINDS = frozenset({"for_statement", "while_statement", "do_while_statement"})
SCOPE_KINDS = CONTRACT_KINDS | FUNCTION_KINDS | LOOP_KINDS


@dataclass(frozen=True)
class AnalysisContext:
    """Everything a check may read while visiting one file.

    ``scope`` is the chain of enclosing contract, function and loop nodes,
    outermost first. A node that opens a scope is already on the chain
    when its own checks run. ``contract`` is the symbol-table handle of the
    innermost contract, if it was registered.
    """

    file: SourceFile
    symbols: SymbolTable
    linearizations: LinearizationCache
    unresolved_imports: bool = False
    scope: tuple[Node, ...] = ()
    contract: Optional[int] = None

    def enter(self, node: Node) -> AnalysisContext:
        """Context for the subtree rooted at ``node``."""
        if node.type not in SCOPE_KINDS:
            return self
        contract = self.contract
        if node.type in CONTRACT_KINDS:
            contract = self.symbols.handle_at(self.file.display_path, node.start_byte)
        return replace(self, scope=self.scope + (node,), contract=contract)

    @property
    def contract_declaration(self) -> Optional[Declaration]:
        return None if self.contract is None else self.symbols[self.contract]

    @property
    def linearization(self) -> Optional[tuple[int, ...]]:
        if self.contract is None:
            return None
        return self.linearizations.get(self.contract)

    def ancestors(self) -> list[Declaration]:
        """Declarations of the current contract's linearization, base-most last, excluding itself."""
        linearization = self.linearization
        if linearization is None:
            return []
        return [self.symbols[h] for h in linearization[1:]]

    @property
    def function_node(self) -> Optional[Node]:
        for node in reversed(self.scope):
            if node.type in FUNCTION_KINDS:
                return node
            if node.type in CONTRACT_KINDS:
                return None
        return None

    @property
    def in_loop(self) -> bool:
        """True inside a loop of the current function."""
        for node in reversed(self.scope):
            if node.type in LOOP_KINDS:
                return True
            if node.type in FUNCTION_KINDS or node.type in CONTRACT_KINDS:
                return False
        return False

    def line(self, node: Node) -> str:
        return self.file.line(node.start_point[0] + 1)
