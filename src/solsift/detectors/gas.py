"""Gas optimization detectors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Optional

from ..detection.helpers import (
    call_arguments,
    callee,
    descendants,
    has_child,
    is_string_literal,
    is_zero,
    member_parts,
    operator,
    outer_expression,
    string_value,
    text,
    unwrap,
    visibility,
)
from ..detection.registry import DetectorSpec, Match
from ..models import Severity

if TYPE_CHECKING:
    from tree_sitter import Node

    from ..detection.context import AnalysisContext


def _revert_reason(node: Node) -> Optional[Node]:
    """The string reason of ``require(c, "...")`` or ``revert("...")``, if any."""
    if node.type == "revert_statement":
        error = unwrap(node.child_by_field_name("error"))
        return error if is_string_literal(error) else None
    function = callee(node)
    if function is None or function.type != "identifier":
        return None
    args = call_arguments(node)
    if text(function) == "require" and len(args) >= 2 and is_string_literal(args[-1]):
        return args[-1]
    if text(function) == "revert" and args and is_string_literal(args[0]):
        return args[0]
    return None


# ==============================================================================
# array-length-in-loop
# ==============================================================================


def _array_length_in_loop(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    condition = node.child_by_field_name("condition")
    if condition is None:
        return
    for member in descendants(condition, ("member_expression",)):
        parts = member_parts(member)
        if parts is not None and parts[1] == "length":
            yield Match(member, message=f"{text(member)} is re-read on every iteration")
            return


ARRAY_LENGTH_IN_LOOP = DetectorSpec(
    id="array-length-in-loop",
    title="Array length read in every loop condition",
    severity=Severity.GAS,
    interests=frozenset({"for_statement"}),
    check=_array_length_in_loop,
    description="Reading .length of a storage array costs an SLOAD per iteration.",
    fix="Cache the length in a local variable before the loop.",
)


# ==============================================================================
# post-increment
# ==============================================================================


def _post_increment(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    op = node.child_by_field_name("operator")
    argument = node.child_by_field_name("argument")
    if op is None or argument is None or op.start_byte < argument.start_byte:
        return
    parent = outer_expression(node).parent
    if parent is not None and parent.type in ("expression_statement", "for_statement"):
        yield Match(node, message=f"Use {text(op)}{text(argument)} instead of {text(node)}")


POST_INCREMENT = DetectorSpec(
    id="post-increment",
    title="Postfix increment/decrement where the value is unused",
    severity=Severity.GAS,
    interests=frozenset({"update_expression"}),
    check=_post_increment,
    description="i++ keeps a copy of the old value; ++i does not.",
    fix="Use the prefix form.",
)


# ==============================================================================
# custom-errors-instead-of-revert-strings
# ==============================================================================


def _custom_errors(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    reason = _revert_reason(node)
    if reason is not None:
        yield Match(node)


CUSTOM_ERRORS = DetectorSpec(
    id="custom-errors-instead-of-revert-strings",
    title="Revert string instead of a custom error",
    severity=Severity.GAS,
    interests=frozenset({"call_expression", "revert_statement"}),
    check=_custom_errors,
    description="Custom errors are cheaper to deploy and to revert with than string reasons.",
    fix="Declare an error and use revert ErrorName().",
)


# ==============================================================================
# long-revert-string
# ==============================================================================


def _long_revert_string(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    reason = _revert_reason(node)
    if reason is not None and len(string_value(reason).encode("utf-8")) > 32:
        yield Match(reason)


LONG_REVERT_STRING = DetectorSpec(
    id="long-revert-string",
    title="Revert string longer than 32 bytes",
    severity=Severity.GAS,
    interests=frozenset({"call_expression", "revert_statement"}),
    check=_long_revert_string,
    description="Each additional 32-byte word of a revert reason costs extra gas at deployment and at runtime.",
    fix="Shorten the message or use a custom error.",
)


# ==============================================================================
# bool-storage
# ==============================================================================


def _is_constant_or_immutable(node: Node) -> bool:
    return has_child(node, "constant") or has_child(node, "immutable")


def _bool_storage(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    type_name = node.child_by_field_name("type")
    if text(type_name).strip() == "bool" and not _is_constant_or_immutable(node):
        yield Match(node)


BOOL_STORAGE = DetectorSpec(
    id="bool-storage",
    title="bool used for storage",
    severity=Severity.GAS,
    interests=frozenset({"state_variable_declaration"}),
    check=_bool_storage,
    description="Writing a bool slot from false to true costs a fresh 20k SSTORE each time.",
    fix="Use uint256(1) and uint256(2) for true/false.",
)


# ==============================================================================
# default-value-initialization
# ==============================================================================


def _default_value_initialization(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if node.type == "state_variable_declaration" and _is_constant_or_immutable(node):
        return
    value = unwrap(node.child_by_field_name("value"))
    if value is None:
        return
    if is_zero(value) or (value.type == "boolean_literal" and text(value) == "false"):
        yield Match(node)


DEFAULT_VALUE_INITIALIZATION = DetectorSpec(
    id="default-value-initialization",
    title="Variable explicitly initialized to its default value",
    severity=Severity.GAS,
    interests=frozenset({"variable_declaration_statement", "state_variable_declaration"}),
    check=_default_value_initialization,
    description="Variables already start at zero/false; assigning it again wastes gas.",
    fix="Drop the initializer.",
)


# ==============================================================================
# unchecked-loop-increment
# ==============================================================================


def _unchecked_loop_increment(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    update = unwrap(node.child_by_field_name("update"))
    if update is None:
        return
    if update.type == "update_expression" and operator(update).strip() == "++":
        yield Match(update)
    elif update.type == "augmented_assignment_expression" and "+=" in text(update):
        yield Match(update)


UNCHECKED_LOOP_INCREMENT = DetectorSpec(
    id="unchecked-loop-increment",
    title="Loop counter incremented with overflow checks",
    severity=Severity.GAS,
    interests=frozenset({"for_statement"}),
    check=_unchecked_loop_increment,
    description="A bounded loop counter cannot overflow, so the checked increment wastes gas.",
    fix="Increment inside unchecked { ++i; } at the end of the loop body.",
)


# ==============================================================================
# this-usage
# ==============================================================================


def _this_usage(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    parts = member_parts(node)
    if parts is None or text(parts[0]) != "this":
        return
    parent = outer_expression(node).parent
    if parent is not None and parent.type == "call_expression":
        yield Match(parent, message=f"External call to this.{parts[1]}()")


THIS_USAGE = DetectorSpec(
    id="this-usage",
    title="External call to the contract itself",
    severity=Severity.GAS,
    interests=frozenset({"member_expression"}),
    check=_this_usage,
    description="Calling through this performs a full external call instead of an internal jump.",
    fix="Make the function public/internal and call it directly.",
)


# ==============================================================================
# uint-gt-zero
# ==============================================================================


def _uint_gt_zero(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    op = operator(node).strip()
    left = node.child_by_field_name("left")
    right = node.child_by_field_name("right")
    if (op == ">" and is_zero(right)) or (op == "<" and is_zero(left)):
        yield Match(node)


UINT_GT_ZERO = DetectorSpec(
    id="uint-gt-zero",
    title="Use != 0 instead of > 0 for unsigned integers",
    severity=Severity.GAS,
    interests=frozenset({"binary_expression"}),
    check=_uint_gt_zero,
    description="For unsigned values != 0 compiles to fewer opcodes than > 0.",
    fix="Compare with != 0.",
)


# ==============================================================================
# shift-instead-of-mul-div
# ==============================================================================


def _is_power_of_two(node: Optional[Node]) -> bool:
    node = unwrap(node)
    if node is None or node.type != "number_literal":
        return False
    value = text(node)
    if not value.isdigit():
        return False
    number = int(value)
    return number >= 2 and number & (number - 1) == 0


def _shift_instead_of_mul_div(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    op = operator(node).strip()
    if op not in ("*", "/"):
        return
    if _is_power_of_two(node.child_by_field_name("right")) or (
        op == "*" and _is_power_of_two(node.child_by_field_name("left"))
    ):
        yield Match(node)


SHIFT_INSTEAD_OF_MUL_DIV = DetectorSpec(
    id="shift-instead-of-mul-div",
    title="Multiplication or division by a power of two",
    severity=Severity.GAS,
    interests=frozenset({"binary_expression"}),
    check=_shift_instead_of_mul_div,
    description="SHL/SHR cost 3 gas against 5 for MUL/DIV.",
    fix="Use << or >> when overflow and rounding semantics allow it.",
)


# ==============================================================================
# private-constants
# ==============================================================================


def _private_constants(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if has_child(node, "constant") and visibility(node) == "public":
        yield Match(node)


PRIVATE_CONSTANTS = DetectorSpec(
    id="private-constants",
    title="Public constant generates a getter",
    severity=Severity.GAS,
    interests=frozenset({"state_variable_declaration"}),
    check=_private_constants,
    description="Each public constant adds a getter function to the deployed bytecode.",
    fix="Make the constant private and expose it only where needed.",
)


DETECTORS = (
    ARRAY_LENGTH_IN_LOOP,
    POST_INCREMENT,
    CUSTOM_ERRORS,
    LONG_REVERT_STRING,
    BOOL_STORAGE,
    DEFAULT_VALUE_INITIALIZATION,
    UNCHECKED_LOOP_INCREMENT,
    THIS_USAGE,
    UINT_GT_ZERO,
    SHIFT_INSTEAD_OF_MUL_DIV,
    PRIVATE_CONSTANTS,
)
