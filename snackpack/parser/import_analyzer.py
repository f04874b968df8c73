"""Import analyzer - extracts the module specifiers a source file depends on."""

import re
from pathlib import Path
from typing import List, Optional

from tree_sitter import Node as TSNode

from .tree_sitter_parser import TreeSitterParser, node_text, string_value, walk

# Fallback patterns for sources tree-sitter cannot fully parse (e.g. Flow annotations)
_STATIC_IMPORT = re.compile(
    r"""^\s*(?:import|export)\s+(?!type\s|typeof\s)(?:[\w$*{}\s,]+?\s+from\s+)?['"]([^'"\n]+)['"]""",
    re.MULTILINE,
)
_REQUIRE_CALL = re.compile(r"""(?<![\w$.])(?:require|import)\s*\(\s*['"]([^'"\n]+)['"]\s*\)""")
_TYPE_ONLY = re.compile(r"""^(?:import|export)\s+type(?:of)?\s+(?!from\b)[\w${*]""")


class ImportAnalyzer:
    """Finds static imports, re-exports, ``require()`` calls and dynamic ``import()``.

    Type-only imports (``import type ...``) are skipped since they do not
    survive compilation. When the parse tree contains errors, a regex scan of
    the source supplements the tree-sitter results.
    """

    def __init__(self, parser: Optional[TreeSitterParser] = None):
        self.parser = parser or TreeSitterParser()

    def analyze(self, source: str, path: Optional[Path] = None) -> List[str]:
        """Return distinct specifiers in source order."""
        tree = self.parser.parse(source.encode("utf-8"), path)
        specifiers = []
        for node in walk(tree.root_node):
            specifier = self._specifier_of(node)
            if specifier and specifier not in specifiers:
                specifiers.append(specifier)

        if tree.root_node.has_error:
            for specifier in self._scan(source):
                if specifier not in specifiers:
                    specifiers.append(specifier)
        return specifiers

    def _specifier_of(self, node: TSNode) -> Optional[str]:
        if node.type in ("import_statement", "export_statement"):
            if _is_type_only(node):
                return None
            return string_value(node.child_by_field_name("source"))

        if node.type == "import_require_clause":
            return string_value(node.child_by_field_name("source"))

        if node.type == "call_expression":
            function = node.child_by_field_name("function")
            if function is None:
                return None
            is_require = function.type == "identifier" and node_text(function) == "require"
            if not is_require and function.type != "import":
                return None
            arguments = node.child_by_field_name("arguments")
            if arguments is None or arguments.named_child_count == 0:
                return None
            return string_value(arguments.named_children[0])

        return None

    @staticmethod
    def _scan(source: str) -> List[str]:
        found = []
        for pattern in (_STATIC_IMPORT, _REQUIRE_CALL):
            for match in pattern.finditer(source):
                if match.group(1) not in found:
                    found.append(match.group(1))
        return found


def _is_type_only(node: TSNode) -> bool:
    if any(child.type in ("type", "typeof") for child in node.children):
        return True
    # Grammars without type syntax recover `import type {...}` as an error node
    return bool(_TYPE_ONLY.match(node_text(node)))
