"""Syntax-tree helpers shared by detectors."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from tree_sitter import Node

from ..scanning.extractor import text_of

LOW_LEVEL_CALLS = frozenset({"call", "delegatecall", "staticcall", "send"})

# Wrappers the grammar puts around expressions and statements.
_TRANSPARENT = frozenset({"expression", "statement"})


def text(node: Optional[Node]) -> str:
    return text_of(node)


def unwrap(node: Optional[Node]) -> Optional[Node]:
    """Strip ``expression``/``statement`` wrappers and parentheses."""
    while node is not None:
        if node.type in _TRANSPARENT and node.named_child_count == 1:
            node = node.named_children[0]
        elif node.type == "parenthesized_expression" and node.named_child_count == 1:
            node = node.named_children[0]
        else:
            break
    return node


def field(node: Node, name: str) -> Optional[Node]:
    """Unwrapped child for a grammar field."""
    return unwrap(node.child_by_field_name(name))


def callee(call: Node) -> Optional[Node]:
    """The called expression, with ``{value: ...}`` call options removed."""
    function = field(call, "function")
    if function is not None and function.type == "struct_expression":
        function = field(function, "type")
    return function


def has_call_options(call: Node) -> bool:
    function = field(call, "function")
    return function is not None and function.type == "struct_expression"


def member_parts(node: Optional[Node]) -> Optional[tuple[Node, str]]:
    """(object node, property name) of a member access."""
    node = unwrap(node)
    if node is None or node.type != "member_expression":
        return None
    obj = unwrap(node.child_by_field_name("object"))
    prop = node.child_by_field_name("property")
    if obj is None or prop is None:
        return None
    return obj, text(prop)


def call_name(call: Node) -> str:
    """Name of the called function: ``foo`` for ``a.b.foo(...)`` and ``foo(...)``."""
    function = callee(call)
    if function is None:
        return ""
    parts = member_parts(function)
    if parts is not None:
        return parts[1]
    return text(function)


def call_receiver(call: Node) -> Optional[Node]:
    parts = member_parts(callee(call))
    return parts[0] if parts is not None else None


def call_arguments(call: Node) -> list[Node]:
    args = []
    for child in call.named_children:
        if child.type == "call_argument":
            value = unwrap(child.named_children[0]) if child.named_children else None
            if value is not None:
                args.append(value)
    return args


def is_member(node: Optional[Node], obj: str, prop: str) -> bool:
    """True for ``obj.prop`` (e.g. ``tx.origin``)."""
    parts = member_parts(node)
    return parts is not None and parts[1] == prop and text(parts[0]) == obj


def is_low_level_call(call: Node) -> bool:
    parts = member_parts(callee(call))
    if parts is None or parts[1] not in LOW_LEVEL_CALLS:
        return False
    return text(parts[0]) not in ("abi", "super")


def descendants(node: Node, kinds: Optional[Iterable[str]] = None) -> Iterator[Node]:
    """Named descendants in pre-order, optionally filtered by kind."""
    wanted = frozenset(kinds) if kinds is not None else None
    stack = list(reversed(node.named_children))
    while stack:
        current = stack.pop()
        if wanted is None or current.type in wanted:
            yield current
        stack.extend(reversed(current.named_children))


def ancestor(node: Node, kinds: Iterable[str], stop: Iterable[str] = ()) -> Optional[Node]:
    """Nearest ancestor of one of ``kinds``; gives up at a ``stop`` kind."""
    wanted = frozenset(kinds)
    stop_at = frozenset(stop)
    current = node.parent
    while current is not None:
        if current.type in wanted:
            return current
        if current.type in stop_at:
            return None
        current = current.parent
    return None


def outer_expression(node: Node) -> Node:
    """Climb ``expression`` wrappers to the outermost node of the same expression."""
    current = node
    while current.parent is not None and current.parent.type in ("expression", "parenthesized_expression"):
        current = current.parent
    return current


def is_statement_expression(node: Node) -> bool:
    """True when the expression's value is discarded (``foo();``)."""
    parent = outer_expression(node).parent
    return parent is not None and parent.type == "expression_statement" and (
        parent.parent is None or parent.parent.type != "for_statement"
    )


def operator(node: Node) -> str:
    op = node.child_by_field_name("operator")
    return text(op)


def is_zero(node: Optional[Node]) -> bool:
    node = unwrap(node)
    return node is not None and node.type == "number_literal" and text(node) in ("0", "0x0", "0x00")


def is_string_literal(node: Optional[Node]) -> bool:
    node = unwrap(node)
    return node is not None and node.type == "string_literal"


def string_value(node: Optional[Node]) -> str:
    """Concatenated contents of a string literal, without quotes."""
    node = unwrap(node)
    if node is None:
        return ""
    parts = [text(child)[1:-1] for child in node.named_children if child.type == "string"]
    return "".join(parts) if parts else text(node).strip("\"'")


def visibility(node: Node) -> Optional[str]:
    """Declared visibility of a function or state variable."""
    declared = node.child_by_field_name("visibility")
    if declared is None:
        for child in node.named_children:
            if child.type == "visibility":
                declared = child
                break
    return text(declared) if declared is not None else None


def has_child(node: Node, kind: str) -> bool:
    return any(child.type == kind for child in node.children)
