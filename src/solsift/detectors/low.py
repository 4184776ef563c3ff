"""Low severity detectors."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterator

from ..detection.helpers import (
    ancestor,
    call_arguments,
    call_name,
    call_receiver,
    callee,
    is_low_level_call,
    is_member,
    member_parts,
    operator,
    outer_expression,
    text,
    unwrap,
)
from ..detection.registry import DetectorSpec, Match
from ..models import Severity
from ..scanning.extractor import extract_member
from ..scanning.models import DeclarationKind, MemberKind

if TYPE_CHECKING:
    from tree_sitter import Node

    from ..detection.context import AnalysisContext


# ==============================================================================
# unsafe-low-level-call
# ==============================================================================


def _unsafe_low_level_call(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if is_low_level_call(node) and call_name(node) != "send":
        yield Match(node)


UNSAFE_LOW_LEVEL_CALL = DetectorSpec(
    id="unsafe-low-level-call",
    title="Low-level call copies unbounded return data",
    severity=Severity.LOW,
    interests=frozenset({"call_expression"}),
    check=_unsafe_low_level_call,
    description="The callee can return a huge payload that the caller pays to copy into memory (return bomb).",
    fix="Use ExcessivelySafeCall or an assembly call that limits returndata.",
)


# ==============================================================================
# empty-ether-receiver
# ==============================================================================


def _empty_ether_receiver(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    payable = any(
        child.type == "state_mutability" and text(child) == "payable" for child in node.named_children
    )
    body = node.child_by_field_name("body")
    if not payable or body is None:
        return
    if all(child.type == "comment" for child in body.named_children):
        yield Match(node)


EMPTY_ETHER_RECEIVER = DetectorSpec(
    id="empty-ether-receiver",
    title="Ether accepted by an empty receive/fallback",
    severity=Severity.LOW,
    interests=frozenset({"fallback_receive_definition"}),
    check=_empty_ether_receiver,
    description="Ether sent by mistake is accepted silently and may be stuck if there is no withdrawal path.",
    fix="Emit an event, restrict senders, or add a withdrawal function.",
    feature="uses_native_token",
)


# ==============================================================================
# large-approval
# ==============================================================================

_APPROVALS = frozenset(
    {"approve", "safeApprove", "forceApprove", "increaseAllowance", "safeIncreaseAllowance"}
)
_MAX_VALUES = frozenset(
    {"type(uint256).max", "type(uint).max", "2**256-1", "uint256(-1)", "uint(-1)", "~uint256(0)"}
)


def _large_approval(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if call_name(node) not in _APPROVALS:
        return
    for arg in call_arguments(node):
        compact = "".join(text(arg).split())
        if compact in _MAX_VALUES or re.fullmatch(r"0x[fF]{64}", compact):
            yield Match(node)
            return


LARGE_APPROVAL = DetectorSpec(
    id="large-approval",
    title="Approval of the maximum uint256 amount",
    severity=Severity.LOW,
    interests=frozenset({"call_expression"}),
    check=_large_approval,
    description="Some tokens (UNI, COMP) revert on approvals larger than uint96.",
    fix="Approve only the amount needed.",
    feature="uses_weird_erc20",
)


# ==============================================================================
# missing-override
# ==============================================================================


def _missing_override(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    member = extract_member(node)
    if member is None or member.kind is not MemberKind.FUNCTION or member.overrides:
        return
    for base in ctx.ancestors():
        if base.kind is DeclarationKind.INTERFACE:
            continue
        for inherited in base.functions():
            if inherited.visibility == "private" or inherited.signature != member.signature:
                continue
            name = node.child_by_field_name("name")
            yield Match(
                name if name is not None else node,
                message=f"{member.name} redefines {base.name}.{inherited.name} without override",
            )
            return


MISSING_OVERRIDE = DetectorSpec(
    id="missing-override",
    title="Function redefines an inherited function without override",
    severity=Severity.LOW,
    interests=frozenset({"function_definition"}),
    check=_missing_override,
    description="A function with the signature of an inherited one must be marked override to make the intent explicit.",
    fix="Add the override keyword (and virtual on the base function).",
    requires_linearization=True,
)


# ==============================================================================
# division-before-multiplication
# ==============================================================================


def _division_before_multiplication(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if operator(node).strip() != "*":
        return
    left = unwrap(node.child_by_field_name("left"))
    if left is not None and left.type == "binary_expression" and operator(left).strip() == "/":
        yield Match(node)


DIVISION_BEFORE_MULTIPLICATION = DetectorSpec(
    id="division-before-multiplication",
    title="Division before multiplication truncates precision",
    severity=Severity.LOW,
    interests=frozenset({"binary_expression"}),
    check=_division_before_multiplication,
    description="Integer division rounds down; multiplying afterwards magnifies the rounding error.",
    fix="Multiply first, then divide.",
)


# ==============================================================================
# unsafe-abi-encode-packed
# ==============================================================================


def _unsafe_abi_encode_packed(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    parts = member_parts(callee(node))
    if parts is None or parts[1] != "encodePacked" or text(parts[0]) != "abi":
        return
    args = call_arguments(node)
    dynamic = [a for a in args if a.type not in ("number_literal", "boolean_literal")]
    if len(args) < 2 or len(dynamic) < 2:
        return
    outer = ancestor(node, ("call_expression",))
    if outer is not None and call_name(outer) == "keccak256":
        yield Match(node)


UNSAFE_ABI_ENCODE_PACKED = DetectorSpec(
    id="unsafe-abi-encode-packed",
    title="abi.encodePacked with multiple arguments used for hashing",
    severity=Severity.LOW,
    interests=frozenset({"call_expression"}),
    check=_unsafe_abi_encode_packed,
    description="Packed encoding of several dynamic values is ambiguous, so different inputs can hash to the same value.",
    fix="Use abi.encode.",
)


# ==============================================================================
# ecrecover-malleability
# ==============================================================================


def _ecrecover_malleability(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    function = callee(node)
    if function is not None and function.type == "identifier" and text(function) == "ecrecover":
        yield Match(node)


ECRECOVER_MALLEABILITY = DetectorSpec(
    id="ecrecover-malleability",
    title="ecrecover accepts malleable signatures",
    severity=Severity.LOW,
    interests=frozenset({"call_expression"}),
    check=_ecrecover_malleability,
    description="ecrecover accepts both s values of a signature and returns address(0) for invalid input.",
    fix="Use OpenZeppelin ECDSA.recover.",
)


# ==============================================================================
# block-timestamp-deadline
# ==============================================================================


def _block_timestamp_deadline(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if not is_member(node, "block", "timestamp"):
        return
    argument = outer_expression(node).parent
    if argument is None or argument.type != "call_argument":
        return
    call = argument.parent
    if call is not None and call.type == "call_expression" and call_receiver(call) is not None:
        yield Match(node)


BLOCK_TIMESTAMP_DEADLINE = DetectorSpec(
    id="block-timestamp-deadline",
    title="block.timestamp passed as a deadline",
    severity=Severity.LOW,
    interests=frozenset({"member_expression"}),
    check=_block_timestamp_deadline,
    description="A deadline of block.timestamp is always satisfied, so a pending transaction can be executed at any later time.",
    fix="Let the caller supply the deadline.",
)


# ==============================================================================
# two-step-ownership-transfer
# ==============================================================================


def _two_step_ownership_transfer(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    names = {decl.name for decl in ctx.ancestors()}
    if names & {"Ownable", "OwnableUpgradeable"} and not names & {"Ownable2Step", "Ownable2StepUpgradeable"}:
        name = node.child_by_field_name("name")
        yield Match(name if name is not None else node)


TWO_STEP_OWNERSHIP_TRANSFER = DetectorSpec(
    id="two-step-ownership-transfer",
    title="Single-step ownership transfer",
    severity=Severity.LOW,
    interests=frozenset({"contract_declaration"}),
    check=_two_step_ownership_transfer,
    description="Transferring ownership to a wrong address in one step is irreversible.",
    fix="Inherit Ownable2Step.",
    requires_linearization=True,
)


# ==============================================================================
# unsafe-downcast
# ==============================================================================

_SIZED_INT = re.compile(r"u?int(\d+)")


def _unsafe_downcast(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    target = next((c for c in node.named_children if c.type == "primitive_type"), None)
    if target is None:
        return
    sized = _SIZED_INT.fullmatch(text(target))
    if sized is None or int(sized.group(1)) >= 256:
        return
    args = call_arguments(node)
    if args and args[0].type != "number_literal":
        yield Match(node, message=f"Unchecked downcast to {text(target)}")


UNSAFE_DOWNCAST = DetectorSpec(
    id="unsafe-downcast",
    title="Unchecked integer downcast",
    severity=Severity.LOW,
    interests=frozenset({"type_cast_expression"}),
    check=_unsafe_downcast,
    description="Explicit narrowing conversions silently truncate high bits.",
    fix="Use OpenZeppelin SafeCast.",
)


# ==============================================================================
# external-call-in-loop
# ==============================================================================


def _external_call_in_loop(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if not ctx.in_loop:
        return
    receiver = call_receiver(node)
    if receiver is None:
        return
    type_name = None
    if receiver.type == "call_expression":
        function = callee(receiver)
        if function is not None and function.type == "identifier":
            type_name = text(function)
    elif receiver.type == "identifier" and ctx.contract_declaration is not None:
        variable = ctx.contract_declaration.member_named(text(receiver))
        if variable is not None and variable.kind is MemberKind.STATE_VARIABLE:
            type_name = variable.type_name
    if not type_name:
        return
    handle = ctx.symbols.resolve(type_name, ctx.file.display_path)
    if handle is None:
        return
    kind = ctx.symbols[handle].kind
    if kind in (DeclarationKind.CONTRACT, DeclarationKind.INTERFACE):
        yield Match(node, message=f"External call to {type_name}.{call_name(node)} inside a loop")


EXTERNAL_CALL_IN_LOOP = DetectorSpec(
    id="external-call-in-loop",
    title="External call inside a loop",
    severity=Severity.LOW,
    interests=frozenset({"call_expression"}),
    check=_external_call_in_loop,
    description="One reverting or gas-hungry callee blocks the whole loop (denial of service).",
    fix="Bound the loop or switch to a pull pattern.",
    requires_symbols=True,
)


# ==============================================================================
# deprecated-safe-approve
# ==============================================================================


def _deprecated_safe_approve(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if call_name(node) == "safeApprove" and call_receiver(node) is not None:
        yield Match(node)


DEPRECATED_SAFE_APPROVE = DetectorSpec(
    id="deprecated-safe-approve",
    title="SafeERC20.safeApprove is deprecated",
    severity=Severity.LOW,
    interests=frozenset({"call_expression"}),
    check=_deprecated_safe_approve,
    description="safeApprove reverts when changing a non-zero allowance to another non-zero value.",
    fix="Use forceApprove or safeIncreaseAllowance.",
)


DETECTORS = (
    UNSAFE_LOW_LEVEL_CALL,
    EMPTY_ETHER_RECEIVER,
    LARGE_APPROVAL,
    MISSING_OVERRIDE,
    DIVISION_BEFORE_MULTIPLICATION,
    UNSAFE_ABI_ENCODE_PACKED,
    ECRECOVER_MALLEABILITY,
    BLOCK_TIMESTAMP_DEADLINE,
    TWO_STEP_OWNERSHIP_TRANSFER,
    UNSAFE_DOWNCAST,
    EXTERNAL_CALL_IN_LOOP,
    DEPRECATED_SAFE_APPROVE,
)
