"""Parsing infrastructure for JavaScript/TypeScript module sources."""

from .import_analyzer import ImportAnalyzer
from .tree_sitter_parser import TreeSitterParser

__all__ = [
    "ImportAnalyzer",
    "TreeSitterParser",
]
