"""Cross-file resolution: project layout, imports, symbols and inheritance."""

from .imports import ImportClosure, ImportResolver, build_closure
from .linearization import InheritanceGraph, LinearizationCache, c3_merge
from .project import ProjectKind, ProjectLayout, detect_project, find_project_root
from .remappings import Remapping, RemappingOrigin, RemappingTable, parse_remapping
from .symbols import SymbolTable, build_symbol_table

__all__ = [
    "ImportClosure",
    "ImportResolver",
    "build_closure",
    "InheritanceGraph",
    "LinearizationCache",
    "c3_merge",
    "ProjectKind",
    "ProjectLayout",
    "detect_project",
    "find_project_root",
    "Remapping",
    "RemappingOrigin",
    "RemappingTable",
    "parse_remapping",
    "SymbolTable",
    "build_symbol_table",
]
