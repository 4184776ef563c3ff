"""High severity detectors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from ..detection.helpers import (
    call_name,
    descendants,
    is_low_level_call,
    is_member,
    operator,
    unwrap,
    visibility,
)
from ..detection.registry import DetectorSpec, Match
from ..models import Severity

if TYPE_CHECKING:
    from tree_sitter import Node

    from ..detection.context import AnalysisContext


# ==============================================================================
# delegatecall-in-loop
# ==============================================================================


def _delegatecall_in_loop(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if ctx.in_loop and call_name(node) == "delegatecall" and is_low_level_call(node):
        yield Match(node)


DELEGATECALL_IN_LOOP = DetectorSpec(
    id="delegatecall-in-loop",
    title="delegatecall inside a loop reuses msg.value on every iteration",
    severity=Severity.HIGH,
    interests=frozenset({"call_expression"}),
    check=_delegatecall_in_loop,
    description=(
        "A delegatecall executes in the caller's context, so every iteration "
        "sees the same msg.value. Payable multicall-style loops can credit "
        "one payment many times."
    ),
    fix="Move the delegatecall out of the loop or reject msg.value in the loop body.",
)


# ==============================================================================
# msg-value-in-loop
# ==============================================================================


def _msg_value_in_loop(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if ctx.in_loop and is_member(node, "msg", "value"):
        yield Match(node)


MSG_VALUE_IN_LOOP = DetectorSpec(
    id="msg-value-in-loop",
    title="msg.value read inside a loop",
    severity=Severity.HIGH,
    interests=frozenset({"member_expression"}),
    check=_msg_value_in_loop,
    description="msg.value is constant for the whole call; using it per iteration counts the payment repeatedly.",
    fix="Track the remaining value in a local variable and decrement it per iteration.",
)


# ==============================================================================
# comparison-without-effect
# ==============================================================================

_COMPARISONS = frozenset({"==", "!=", "<", ">", "<=", ">="})


def _comparison_without_effect(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    # A for-loop condition is also an expression_statement.
    if node.parent is not None and node.parent.type == "for_statement":
        return
    if not node.named_children:
        return
    expr = unwrap(node.named_children[0])
    if expr is not None and expr.type == "binary_expression" and operator(expr).strip() in _COMPARISONS:
        yield Match(expr)


COMPARISON_WITHOUT_EFFECT = DetectorSpec(
    id="comparison-without-effect",
    title="Comparison result is discarded",
    severity=Severity.HIGH,
    interests=frozenset({"expression_statement"}),
    check=_comparison_without_effect,
    description="A statement consisting only of a comparison has no effect; an assignment or require was probably intended.",
    fix="Wrap the comparison in require(...) or use = for assignment.",
)


# ==============================================================================
# unprotected-selfdestruct
# ==============================================================================


def _unprotected_selfdestruct(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if call_name(node) not in ("selfdestruct", "suicide"):
        return
    function = ctx.function_node
    if function is None or function.type != "function_definition":
        return
    if visibility(function) not in ("public", "external"):
        return
    guarded = any(child.type == "modifier_invocation" for child in function.named_children) or any(
        _checks_sender(comparison) for comparison in descendants(function, ("binary_expression",))
    )
    if not guarded:
        yield Match(node)


def _checks_sender(comparison: Node) -> bool:
    if operator(comparison).strip() not in ("==", "!="):
        return False
    return any(is_member(m, "msg", "sender") for m in descendants(comparison, ("member_expression",)))


UNPROTECTED_SELFDESTRUCT = DetectorSpec(
    id="unprotected-selfdestruct",
    title="selfdestruct reachable without access control",
    severity=Severity.HIGH,
    interests=frozenset({"call_expression"}),
    check=_unprotected_selfdestruct,
    description="Anyone can call this public function and destroy the contract.",
    fix="Restrict the function with an access-control modifier.",
)


DETECTORS = (
    DELEGATECALL_IN_LOOP,
    MSG_VALUE_IN_LOOP,
    COMPARISON_WITHOUT_EFFECT,
    UNPROTECTED_SELFDESTRUCT,
)
