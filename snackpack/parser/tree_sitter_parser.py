"""Tree-sitter parsing for JavaScript, TypeScript and TSX module sources."""

from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node as TSNode, Parser, Tree

_LANGUAGES: Dict[str, Callable[[], object]] = {
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}


class TreeSitterParser:
    """Parses module sources, picking the grammar from the file extension.

    Parsers are created lazily per dialect and reused.
    """

    def __init__(self):
        self._parsers: Dict[str, Parser] = {}

    @staticmethod
    def dialect_for(path: Optional[Path]) -> str:
        suffix = path.suffix.lower() if path else ".js"
        if suffix == ".ts":
            return "typescript"
        if suffix == ".tsx":
            return "tsx"
        return "javascript"

    def get_parser(self, dialect: str) -> Parser:
        parser = self._parsers.get(dialect)
        if parser is None:
            parser = Parser(Language(_LANGUAGES[dialect]()))
            self._parsers[dialect] = parser
        return parser

    def parse(self, source: bytes, path: Optional[Path] = None) -> Tree:
        return self.get_parser(self.dialect_for(path)).parse(source)


def walk(node: TSNode) -> Iterator[TSNode]:
    """Pre-order traversal of ``node`` and all its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def node_text(node: TSNode) -> str:
    return node.text.decode("utf-8", errors="replace")


def string_value(node: Optional[TSNode]) -> Optional[str]:
    """Value of a plain string literal node, or None for anything else."""
    if node is None or node.type != "string":
        return None
    text = node_text(node)
    if len(text) >= 2 and text[0] in "'\"" and text[-1] == text[0]:
        return text[1:-1]
    return None


def same_node(a: Optional[TSNode], b: Optional[TSNode]) -> bool:
    if a is None or b is None:
        return False
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type
