"""Source discovery, parsing and outline extraction for Solidity files."""

from .loader import SourceLoader, display_path
from .models import (
    Declaration,
    DeclarationKind,
    ImportedSymbol,
    ImportStatement,
    Member,
    MemberKind,
    SourceFile,
)
from .parser import SolidityParser

__all__ = [
    "SourceLoader",
    "display_path",
    "SolidityParser",
    "SourceFile",
    "ImportStatement",
    "ImportedSymbol",
    "Declaration",
    "DeclarationKind",
    "Member",
    "MemberKind",
]
