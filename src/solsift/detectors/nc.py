"""Non-critical (style and hygiene) detectors."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterator, Optional

from ..detection.context import CONTRACT_KINDS
from ..detection.helpers import (
    callee,
    descendants,
    has_child,
    member_parts,
    text,
    unwrap,
    visibility,
)
from ..detection.registry import DetectorSpec, Match
from ..models import Position, Severity, Span
from ..scanning.models import DeclarationKind
from ..scanning.versions import targets_at_least

if TYPE_CHECKING:
    from tree_sitter import Node

    from ..detection.context import AnalysisContext

MAX_LINE_LENGTH = 120


# ==============================================================================
# floating-pragma
# ==============================================================================


def _floating_pragma(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    for operator in descendants(node, ("solidity_version_comparison_operator",)):
        if text(operator).strip() in ("^", "~", ">", ">="):
            yield Match(node)
            return


FLOATING_PRAGMA = DetectorSpec(
    id="floating-pragma",
    title="Floating compiler version",
    severity=Severity.NC,
    interests=frozenset({"pragma_directive"}),
    check=_floating_pragma,
    description="Contracts should be deployed with the compiler version they were tested with.",
    fix="Pin the pragma to an exact version.",
)


# ==============================================================================
# missing-spdx
# ==============================================================================


def _missing_spdx(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if b"SPDX-License-Identifier" not in ctx.file.source:
        yield Match(span=Span(Position(1, 0), Position(1, 0)))


MISSING_SPDX = DetectorSpec(
    id="missing-spdx",
    title="Missing SPDX license identifier",
    severity=Severity.NC,
    interests=frozenset({"source_file"}),
    check=_missing_spdx,
    description="The compiler warns about source files without an SPDX-License-Identifier comment.",
    fix="Add // SPDX-License-Identifier: <license> as the first line.",
)


# ==============================================================================
# todo-left
# ==============================================================================

_TODO = re.compile(r"\b(TODO|FIXME|XXX|HACK)\b")


def _todo_left(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    marker = _TODO.search(text(node))
    if marker is not None:
        yield Match(node, message=f"Unresolved {marker.group(1)} comment")


TODO_LEFT = DetectorSpec(
    id="todo-left",
    title="Unresolved TODO comment",
    severity=Severity.NC,
    interests=frozenset({"comment"}),
    check=_todo_left,
    description="Open TODOs indicate unfinished code.",
    fix="Resolve the TODO or track it in an issue.",
)


# ==============================================================================
# line-length
# ==============================================================================


def _line_length(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    for number, line in enumerate(ctx.file.lines, start=1):
        if len(line) > MAX_LINE_LENGTH:
            yield Match(
                span=Span(Position(number, MAX_LINE_LENGTH), Position(number, len(line))),
                message=f"Line is {len(line)} characters long",
            )


LINE_LENGTH = DetectorSpec(
    id="line-length",
    title="Line exceeds 120 characters",
    severity=Severity.NC,
    interests=frozenset({"source_file"}),
    check=_line_length,
    description="The Solidity style guide recommends a maximum line length of 120 characters.",
    fix="Wrap the line.",
)


# ==============================================================================
# constant-case
# ==============================================================================

_UPPER_CASE = re.compile(r"[A-Z][A-Z0-9_]*")


def _constant_case(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if not has_child(node, "constant"):
        return
    name = node.child_by_field_name("name")
    if name is not None and not _UPPER_CASE.fullmatch(text(name)):
        yield Match(name, message=f"Constant {text(name)} should be UPPER_CASE")


CONSTANT_CASE = DetectorSpec(
    id="constant-case",
    title="Constant name is not UPPER_CASE",
    severity=Severity.NC,
    interests=frozenset({"state_variable_declaration"}),
    check=_constant_case,
    description="The style guide names constants in UPPER_CASE_WITH_UNDERSCORES.",
)


# ==============================================================================
# interface-naming
# ==============================================================================


def _interface_naming(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    name = node.child_by_field_name("name")
    if name is not None and not re.match(r"I[A-Z0-9]", text(name)):
        yield Match(name, message=f"Interface {text(name)} should be prefixed with I")


INTERFACE_NAMING = DetectorSpec(
    id="interface-naming",
    title="Interface name lacks the I prefix",
    severity=Severity.NC,
    interests=frozenset({"interface_declaration"}),
    check=_interface_naming,
)


# ==============================================================================
# multiple-contracts
# ==============================================================================


def _multiple_contracts(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    declared = [child for child in node.named_children if child.type in CONTRACT_KINDS]
    if len(declared) > 1:
        name = declared[1].child_by_field_name("name")
        yield Match(
            name if name is not None else declared[1],
            message=f"File declares {len(declared)} contracts, interfaces or libraries",
        )


MULTIPLE_CONTRACTS = DetectorSpec(
    id="multiple-contracts",
    title="Multiple contracts in one file",
    severity=Severity.NC,
    interests=frozenset({"source_file"}),
    check=_multiple_contracts,
    description="One contract per file keeps sources easy to navigate and review.",
)


# ==============================================================================
# empty-blocks
# ==============================================================================


def _empty_blocks(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if any(child.type not in ("comment", "unchecked") for child in node.named_children):
        return
    parent = node.parent
    if node.type == "function_body" and parent is not None:
        if parent.type in ("fallback_receive_definition", "constructor_definition"):
            return
        if any(child.type == "virtual" for child in parent.named_children):
            return
    yield Match(node)


EMPTY_BLOCKS = DetectorSpec(
    id="empty-blocks",
    title="Empty block",
    severity=Severity.NC,
    interests=frozenset({"function_body", "block_statement"}),
    check=_empty_blocks,
    description="Empty blocks are usually unfinished code or should be removed.",
    fix="Implement the block, remove it, or add a comment explaining why it is empty.",
)


# ==============================================================================
# event-missing-indexed
# ==============================================================================


def _event_missing_indexed(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    parameters = [child for child in node.named_children if child.type == "event_parameter"]
    if parameters and not any(has_child(p, "indexed") for p in parameters):
        name = node.child_by_field_name("name")
        yield Match(name if name is not None else node, message=f"Event {text(name)} has no indexed fields")


EVENT_MISSING_INDEXED = DetectorSpec(
    id="event-missing-indexed",
    title="Event without indexed fields",
    severity=Severity.NC,
    interests=frozenset({"event_definition"}),
    check=_event_missing_indexed,
    description="Indexed fields let off-chain tools filter events efficiently.",
)


# ==============================================================================
# console-log-import
# ==============================================================================


def _console_log_import(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    source = text(node.child_by_field_name("source"))
    if re.search(r"(^|/)console2?\.sol", source.strip("\"'")):
        yield Match(node)


CONSOLE_LOG_IMPORT = DetectorSpec(
    id="console-log-import",
    title="Debug console import left in source",
    severity=Severity.NC,
    interests=frozenset({"import_directive"}),
    check=_console_log_import,
    description="console.sol is a development helper and should not ship in production contracts.",
    fix="Remove the import and the console.log calls.",
)


# ==============================================================================
# large-literal
# ==============================================================================

_ROUND_NUMBER = re.compile(r"[1-9]\d*0{4,}")


def _large_literal(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if _ROUND_NUMBER.fullmatch(text(node)):
        yield Match(node, message=f"Use scientific notation or underscores for {text(node)}")


LARGE_LITERAL = DetectorSpec(
    id="large-literal",
    title="Large number literal",
    severity=Severity.NC,
    interests=frozenset({"number_literal"}),
    check=_large_literal,
    description="Long runs of zeros are easy to miscount.",
    fix="Write 1e6 or 1_000_000.",
)


# ==============================================================================
# default-visibility
# ==============================================================================


def _default_visibility(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if visibility(node) is None:
        name = node.child_by_field_name("name")
        yield Match(name if name is not None else node, message=f"State variable {text(name)} has no explicit visibility")


DEFAULT_VISIBILITY = DetectorSpec(
    id="default-visibility",
    title="State variable uses default visibility",
    severity=Severity.NC,
    interests=frozenset({"state_variable_declaration"}),
    check=_default_visibility,
    description="Implicit internal visibility hides intent.",
    fix="Declare the visibility explicitly.",
)


# ==============================================================================
# while-true-loop
# ==============================================================================


def _while_true_loop(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    condition = unwrap(node.child_by_field_name("condition"))
    if condition is not None and condition.type == "boolean_literal" and text(condition) == "true":
        yield Match(node)


WHILE_TRUE_LOOP = DetectorSpec(
    id="while-true-loop",
    title="while (true) loop",
    severity=Severity.NC,
    interests=frozenset({"while_statement"}),
    check=_while_true_loop,
    description="Unbounded loops depend on an inner break and are easy to get wrong.",
    fix="Use an explicit loop condition.",
)


# ==============================================================================
# underscore-prefix
# ==============================================================================


def _underscore_prefix(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if visibility(node) not in ("internal", "private"):
        return
    declaration = ctx.contract_declaration
    if declaration is not None and declaration.kind is DeclarationKind.LIBRARY:
        return
    name = node.child_by_field_name("name")
    if name is not None and not text(name).startswith("_"):
        yield Match(name, message=f"Non-public function {text(name)} should start with _")


UNDERSCORE_PREFIX = DetectorSpec(
    id="underscore-prefix",
    title="Internal or private function without underscore prefix",
    severity=Severity.NC,
    interests=frozenset({"function_definition"}),
    check=_underscore_prefix,
    description="Prefixing non-public functions with _ makes their visibility obvious at call sites.",
)


# ==============================================================================
# year-365-days
# ==============================================================================


def _year_365_days(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if "".join(text(node).split()) == "365days":
        yield Match(node)


YEAR_365_DAYS = DetectorSpec(
    id="year-365-days",
    title="Year assumed to be 365 days",
    severity=Severity.NC,
    interests=frozenset({"number_literal"}),
    check=_year_365_days,
    description="Leap years have 366 days; interest or vesting math may drift.",
    fix="Document the assumption or use 365.25 days in basis points.",
)


# ==============================================================================
# duplicate-import
# ==============================================================================


def _duplicate_import(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    seen: set[str] = set()
    for statement in ctx.file.imports:
        if statement.path in seen:
            yield Match(span=statement.span, message=f"'{statement.path}' is imported more than once")
        seen.add(statement.path)


DUPLICATE_IMPORT = DetectorSpec(
    id="duplicate-import",
    title="File imported more than once",
    severity=Severity.NC,
    interests=frozenset({"source_file"}),
    check=_duplicate_import,
)


# ==============================================================================
# named-mappings
# ==============================================================================


def _unnamed_mapping(type_node: Optional[Node]) -> bool:
    if type_node is None or not has_child(type_node, "mapping"):
        return False
    if type_node.child_by_field_name("key_identifier") is None:
        return True
    if type_node.child_by_field_name("value_identifier") is None:
        return True
    return _unnamed_mapping(type_node.child_by_field_name("value_type"))


def _named_mappings(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if not targets_at_least(ctx.file.solidity_version, "0.8.18"):
        return
    if _unnamed_mapping(node.child_by_field_name("type")):
        name = text(node.child_by_field_name("name"))
        yield Match(node, message=f"Mapping {name} has unnamed keys or values")


NAMED_MAPPINGS = DetectorSpec(
    id="named-mappings",
    title="Consider using named mappings",
    severity=Severity.NC,
    interests=frozenset({"state_variable_declaration"}),
    check=_named_mappings,
    description="Solidity 0.8.18 allows naming mapping keys and values, which documents what they hold.",
    fix="Write mapping(address user => uint256 balance).",
)


# ==============================================================================
# deprecated-safemath
# ==============================================================================


def _deprecated_safemath(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    declaration = ctx.contract_declaration
    if declaration is None or declaration.kind is not DeclarationKind.CONTRACT:
        return
    if not targets_at_least(ctx.file.solidity_version, "0.8.0"):
        return
    for library in node.named_children:
        if library.type == "type_alias" and "SafeMath" in text(library):
            yield Match(node, message=f"using {text(library)} is redundant with checked arithmetic")
            return


DEPRECATED_SAFEMATH = DetectorSpec(
    id="deprecated-safemath",
    title="SafeMath used with Solidity >= 0.8",
    severity=Severity.NC,
    interests=frozenset({"using_directive"}),
    check=_deprecated_safemath,
    description="Solidity 0.8 reverts on overflow and underflow, so SafeMath only adds gas overhead.",
    fix="Use the built-in arithmetic operators.",
)


# ==============================================================================
# prefer-concat
# ==============================================================================


def _prefer_concat(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    parts = member_parts(callee(node))
    if parts is None or parts[1] != "encodePacked" or text(parts[0]) != "abi":
        return
    if targets_at_least(ctx.file.solidity_version, "0.8.4"):
        yield Match(node)


PREFER_CONCAT = DetectorSpec(
    id="prefer-concat",
    title="Prefer string.concat() or bytes.concat() over abi.encodePacked()",
    severity=Severity.NC,
    interests=frozenset({"call_expression"}),
    check=_prefer_concat,
    description=(
        "bytes.concat() (0.8.4) and string.concat() (0.8.12) state the intent of a concatenation "
        "and keep its result typed."
    ),
    fix="Replace abi.encodePacked(a, b) with bytes.concat(a, b) or string.concat(a, b).",
)


DETECTORS = (
    FLOATING_PRAGMA,
    MISSING_SPDX,
    TODO_LEFT,
    LINE_LENGTH,
    CONSTANT_CASE,
    INTERFACE_NAMING,
    MULTIPLE_CONTRACTS,
    EMPTY_BLOCKS,
    EVENT_MISSING_INDEXED,
    CONSOLE_LOG_IMPORT,
    LARGE_LITERAL,
    DEFAULT_VISIBILITY,
    WHILE_TRUE_LOOP,
    UNDERSCORE_PREFIX,
    YEAR_365_DAYS,
    DUPLICATE_IMPORT,
    NAMED_MAPPINGS,
    DEPRECATED_SAFEMATH,
    PREFER_CONCAT,
)
