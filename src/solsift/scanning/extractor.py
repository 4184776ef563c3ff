"""Extracts imports and declarations from a Solidity syntax tree.

The extractor only reads the outline of a file: import directives,
top-level declarations and the members of contracts. Function bodies are
left to the detectors.
"""

from __future__ import annotations

import re
from typing import Optional

from tree_sitter import Node

from ..models import Span
from .models import (
    Declaration,
    DeclarationKind,
    ImportedSymbol,
    ImportStatement,
    Member,
    MemberKind,
)

_CONTAINER_KINDS = {
    "contract_declaration": DeclarationKind.CONTRACT,
    "interface_declaration": DeclarationKind.INTERFACE,
    "library_declaration": DeclarationKind.LIBRARY,
}

_NESTED_KINDS = {
    "struct_declaration": DeclarationKind.STRUCT,
    "enum_declaration": DeclarationKind.ENUM,
    "error_declaration": DeclarationKind.ERROR,
    "event_definition": DeclarationKind.EVENT,
}

_TOP_LEVEL_KINDS = {**_NESTED_KINDS, "function_definition": DeclarationKind.FUNCTION}

_WHITESPACE = re.compile(r"\s+")

# Solidity aliases; canonical forms keep signatures comparable.
_TYPE_ALIASES = {"uint": "uint256", "int": "int256", "byte": "bytes1", "ufixed": "ufixed128x18", "fixed": "fixed128x18"}


def text_of(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def span_of(node: Node) -> Span:
    return Span.from_points(node.start_point, node.end_point)


def normalize_type(type_text: str) -> str:
    """Canonical spelling of a type for signature comparison."""
    compact = _WHITESPACE.sub("", type_text)
    base, bracket, rest = compact.partition("[")
    base = _TYPE_ALIASES.get(base, base)
    return base + bracket + rest


def extract_imports(root: Node) -> tuple[ImportStatement, ...]:
    """Collect every import directive of a file in source order."""
    imports: list[ImportStatement] = []
    for node in root.named_children:
        if node.type != "import_directive":
            continue
        path: Optional[str] = None
        unit_alias: Optional[str] = None
        symbols: list[ImportedSymbol] = []
        last_field: Optional[str] = None
        for index, child in enumerate(node.children):
            field_name = node.field_name_for_child(index)
            if field_name == "source":
                path = text_of(child).strip().strip("\"'")
            elif field_name == "import_name":
                symbols.append(ImportedSymbol(text_of(child)))
            elif field_name == "alias":
                # An alias right after a name renames that symbol;
                # anywhere else it names the whole unit.
                if last_field == "import_name" and symbols:
                    symbols[-1] = ImportedSymbol(symbols[-1].name, text_of(child))
                else:
                    unit_alias = text_of(child)
            if child.is_named:
                last_field = field_name
        if path is None:
            continue
        imports.append(
            ImportStatement(path=path, span=span_of(node), unit_alias=unit_alias, symbols=tuple(symbols))
        )
    return tuple(imports)


def extract_declarations(root: Node, display_path: str) -> tuple[Declaration, ...]:
    """Collect file-level declarations and the declarations nested in contracts."""
    declarations: list[Declaration] = []
    for node in root.named_children:
        if node.type in _CONTAINER_KINDS:
            container = _container(node, display_path)
            if container is None:
                continue
            declarations.append(container)
            body = node.child_by_field_name("body")
            for child in body.named_children if body is not None else ():
                kind = _NESTED_KINDS.get(child.type)
                name = text_of(child.child_by_field_name("name"))
                if kind is not None and name:
                    declarations.append(
                        Declaration(
                            kind=kind,
                            name=name,
                            file=display_path,
                            span=span_of(child),
                            start_byte=child.start_byte,
                            scope=container.name,
                        )
                    )
        elif node.type in _TOP_LEVEL_KINDS:
            name = text_of(node.child_by_field_name("name"))
            if name:
                declarations.append(
                    Declaration(
                        kind=_TOP_LEVEL_KINDS[node.type],
                        name=name,
                        file=display_path,
                        span=span_of(node),
                        start_byte=node.start_byte,
                    )
                )
    return tuple(declarations)


def _container(node: Node, display_path: str) -> Optional[Declaration]:
    name = text_of(node.child_by_field_name("name"))
    if not name:
        return None
    bases = tuple(
        _WHITESPACE.sub("", text_of(spec.child_by_field_name("ancestor")))
        for spec in node.named_children
        if spec.type == "inheritance_specifier"
    )
    body = node.child_by_field_name("body")
    members = tuple(
        member
        for member in (extract_member(child) for child in (body.named_children if body is not None else ()))
        if member is not None
    )
    return Declaration(
        kind=_CONTAINER_KINDS[node.type],
        name=name,
        file=display_path,
        span=span_of(node),
        start_byte=node.start_byte,
        bases=tuple(b for b in bases if b),
        members=members,
        is_abstract=any(child.type == "abstract" for child in node.children),
    )


def extract_member(node: Node) -> Optional[Member]:
    if node.type == "state_variable_declaration":
        return _state_variable(node)
    if node.type == "function_definition":
        return _callable(node, MemberKind.FUNCTION, text_of(node.child_by_field_name("name")))
    if node.type == "modifier_definition":
        return _callable(node, MemberKind.MODIFIER, text_of(node.child_by_field_name("name")))
    if node.type == "constructor_definition":
        return _callable(node, MemberKind.CONSTRUCTOR, "constructor")
    if node.type == "fallback_receive_definition":
        is_receive = any(child.type == "receive" for child in node.children)
        kind = MemberKind.RECEIVE if is_receive else MemberKind.FALLBACK
        return _callable(node, kind, kind.value)
    return None


def _state_variable(node: Node) -> Member:
    visibility = node.child_by_field_name("visibility")
    override = _first_child(node, "override_specifier")
    return Member(
        kind=MemberKind.STATE_VARIABLE,
        name=text_of(node.child_by_field_name("name")),
        span=span_of(node),
        visibility=text_of(visibility) or None,
        type_name=normalize_type(text_of(node.child_by_field_name("type"))),
        overrides=override is not None,
        override_bases=_override_bases(override),
        is_constant=any(child.type == "constant" for child in node.children),
        is_immutable=any(child.type == "immutable" for child in node.children),
    )


def _callable(node: Node, kind: MemberKind, name: str) -> Member:
    override = _first_child(node, "override_specifier")
    parameter_types = tuple(
        normalize_type(text_of(p.child_by_field_name("type")))
        for p in node.named_children
        if p.type == "parameter"
    )
    modifiers = tuple(
        text_of(m.named_children[0]) if m.named_children else text_of(m)
        for m in node.named_children
        if m.type == "modifier_invocation"
    )
    return Member(
        kind=kind,
        name=name,
        span=span_of(node),
        visibility=text_of(_first_child(node, "visibility")) or None,
        mutability=text_of(_first_child(node, "state_mutability")) or None,
        parameter_types=parameter_types,
        modifiers=modifiers,
        override_bases=_override_bases(override),
        overrides=override is not None,
        is_virtual=_first_child(node, "virtual") is not None,
        has_body=node.child_by_field_name("body") is not None,
    )


def _override_bases(override: Optional[Node]) -> tuple[str, ...]:
    if override is None:
        return ()
    return tuple(
        _WHITESPACE.sub("", text_of(child))
        for child in override.named_children
        if child.type == "user_defined_type"
    )


def _first_child(node: Node, node_type: str) -> Optional[Node]:
    for child in node.named_children:
        if child.type == node_type:
            return child
    return None
