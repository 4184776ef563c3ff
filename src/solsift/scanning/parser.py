"""Tree-sitter parser wrapper for Solidity.

Usage:
    parser = SolidityParser()
    tree = parser.parse(code_bytes)
    if tree.root_node.has_error:
        line, reason = first_error(tree.root_node)
"""

from __future__ import annotations

import warnings
from functools import lru_cache
from typing import Iterator, Optional

import tree_sitter_solidity
from tree_sitter import Language, Node, Parser, Tree


@lru_cache(maxsize=1)
def solidity_language() -> Language:
    """Load the Solidity grammar once per process."""
    with warnings.catch_warnings():
        # tree-sitter-solidity hands the grammar over as an int pointer,
        # which newer tree-sitter releases accept with a DeprecationWarning.
        warnings.simplefilter("ignore", DeprecationWarning)
        return Language(tree_sitter_solidity.language())


class SolidityParser:
    """Thin wrapper around a tree-sitter ``Parser`` bound to Solidity.

    A tree-sitter parser holds mutable state, so each worker thread should
    own its own instance. Trees and nodes produced by it are safe to read
    from any thread once parsing has finished.
    """

    def __init__(self) -> None:
        self._parser = Parser(solidity_language())

    def parse(self, code: bytes) -> Tree:
        """Parse source bytes and return the syntax tree.

        Tree-sitter always returns a tree; syntax errors show up as
        ``ERROR`` or missing nodes, flagged by ``root_node.has_error``.
        """
        return self._parser.parse(code)


def first_error(root: Node) -> Optional[tuple[int, str]]:
    """Locate the first syntax error in a tree.

    Returns:
        (1-based line, description) of the earliest ERROR or MISSING node,
        or None if the tree is clean.
    """
    if not root.has_error:
        return None
    for node in iter_nodes(root):
        if node.is_missing:
            return node.start_point[0] + 1, f"missing {node.type}"
        if node.is_error or node.type == "ERROR":
            snippet = (node.text or b"").decode("utf-8", errors="replace").strip()
            snippet = snippet.splitlines()[0][:60] if snippet else ""
            return node.start_point[0] + 1, f"unexpected '{snippet}'" if snippet else "syntax error"
    return root.start_point[0] + 1, "syntax error"


def iter_nodes(root: Node) -> Iterator[Node]:
    """Pre-order iteration over every node (named or not) below ``root``."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))
