"""Per-file data produced by the source loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from tree_sitter import Tree

from ..models import Span


@dataclass(frozen=True)
class ImportedSymbol:
    """One entry of ``import {name as alias} from "..."``."""

    name: str
    alias: Optional[str] = None

    @property
    def local_name(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class ImportStatement:
    """An import directive as written in the source.

    ``path`` is the unquoted string literal. ``unit_alias`` is set for
    ``import "x" as U`` and ``import * as U from "x"``.
    """

    path: str
    span: Span
    unit_alias: Optional[str] = None
    symbols: tuple[ImportedSymbol, ...] = ()


class DeclarationKind(Enum):
    CONTRACT = "contract"
    INTERFACE = "interface"
    LIBRARY = "library"
    STRUCT = "struct"
    ENUM = "enum"
    FUNCTION = "function"
    ERROR = "error"
    EVENT = "event"

    @property
    def inheritable(self) -> bool:
        return self in (DeclarationKind.CONTRACT, DeclarationKind.INTERFACE, DeclarationKind.LIBRARY)


class MemberKind(Enum):
    FUNCTION = "function"
    MODIFIER = "modifier"
    STATE_VARIABLE = "state_variable"
    CONSTRUCTOR = "constructor"
    FALLBACK = "fallback"
    RECEIVE = "receive"


@dataclass(frozen=True)
class Member:
    """A function, modifier, state variable or special function of a contract."""

    kind: MemberKind
    name: str
    span: Span
    visibility: Optional[str] = None
    mutability: Optional[str] = None
    type_name: Optional[str] = None
    parameter_types: tuple[str, ...] = ()
    modifiers: tuple[str, ...] = ()
    override_bases: tuple[str, ...] = ()
    overrides: bool = False
    is_virtual: bool = False
    is_constant: bool = False
    is_immutable: bool = False
    has_body: bool = True

    @property
    def signature(self) -> str:
        """Name plus parameter types, e.g. ``transfer(address,uint256)``."""
        return f"{self.name}({','.join(self.parameter_types)})"


@dataclass(frozen=True)
class Declaration:
    """A named top-level or contract-level declaration.

    ``scope`` is empty for file-level declarations and the owning
    contract's name for nested ones. ``bases`` keeps the inheritance list
    exactly as written (``Lib.Base`` stays qualified).
    """

    kind: DeclarationKind
    name: str
    file: str
    span: Span
    start_byte: int
    scope: str = ""
    bases: tuple[str, ...] = ()
    members: tuple[Member, ...] = ()
    is_abstract: bool = False

    @property
    def qualified_name(self) -> str:
        return f"{self.scope}.{self.name}" if self.scope else self.name

    def functions(self) -> tuple[Member, ...]:
        return tuple(m for m in self.members if m.kind is MemberKind.FUNCTION)

    def member_named(self, name: str) -> Optional[Member]:
        for member in self.members:
            if member.name == name:
                return member
        return None


@dataclass(frozen=True, eq=False)
class SourceFile:
    """A loaded Solidity file.

    A file that failed to read or parse keeps ``tree=None`` (read failure)
    or its partial tree, plus ``parse_error``; it contributes no
    declarations and is never visited by detectors.
    """

    path: Path
    display_path: str
    source: bytes
    tree: Optional[Tree] = None
    parse_error: Optional[str] = None
    error_line: Optional[int] = None
    imports: tuple[ImportStatement, ...] = ()
    declarations: tuple[Declaration, ...] = ()
    solidity_version: Optional[str] = None
    in_scope: bool = True
    lines: tuple[str, ...] = field(default=(), repr=False)

    @property
    def parsed(self) -> bool:
        return self.tree is not None and self.parse_error is None

    def line(self, number: int) -> str:
        """Source line by 1-based number, empty when out of range."""
        if 1 <= number <= len(self.lines):
            return self.lines[number - 1]
        return ""
