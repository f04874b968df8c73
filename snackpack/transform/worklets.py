"""Worklet transform - rewrites ``'worklet'`` functions into relocatable closures.

A worklet is a function whose body starts with the ``'worklet'`` directive:

    function onScroll(event) {
      'worklet';
      offset.value = event.y;
    }

becomes a factory that builds the same function and attaches the data needed
to re-create it on another runtime:

    const onScroll = (function () {
      const _f = function onScroll(event) {
        offset.value = event.y;
      };
      _f._closure = {offset};
      _f.asString = "function onScroll(event) {\\n  offset.value = event.y;\\n}";
      _f.__workletHash = 1234567890;
      _f.__location = "src/handlers.js (1:0)";
      return _f;
    })();

Object-literal methods become ``name: <factory>`` properties. Every rewritten
function emits exactly one ``__workletHash`` marker.
"""

import hashlib
import json
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger
from tree_sitter import Node as TSNode

from snackpack.parser.tree_sitter_parser import TreeSitterParser, node_text, same_node, string_value, walk

WORKLET_DIRECTIVE = "worklet"

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
    }
)

DECLARATION_TYPES = frozenset({"function_declaration", "generator_function_declaration"})

# Identifiers a worklet never captures
GLOBALS = frozenset(
    {
        "arguments", "undefined", "NaN", "Infinity", "globalThis", "global", "_WORKLET",
        "Math", "Object", "Array", "JSON", "Number", "String", "Boolean", "Symbol", "Date",
        "Error", "TypeError", "RangeError", "Promise", "Map", "Set", "WeakMap", "WeakSet",
        "console", "isNaN", "isFinite", "parseInt", "parseFloat", "setTimeout", "clearTimeout",
        "setInterval", "clearInterval", "requestAnimationFrame", "performance",
    }
)


class WorkletTransform:
    """Source-to-source worklet rewriting for one module at a time.

    Sources without worklet directives come back unchanged, which makes the
    transform safe to run twice: the first pass removes every directive.
    """

    def __init__(self, parser: Optional[TreeSitterParser] = None):
        self.parser = parser or TreeSitterParser()

    def transform(self, source: str, path: Optional[Path] = None, display_path: Optional[str] = None) -> str:
        if WORKLET_DIRECTIVE not in source:
            return source

        data = source.encode("utf-8")
        tree = self.parser.parse(data, path)
        rewriter = _Rewriter(data, display_path or (path.name if path else "<unknown>"))
        root = tree.root_node
        # The root node excludes leading and trailing whitespace
        output = data[: root.start_byte] + rewriter.render(root) + data[root.end_byte :]
        if rewriter.count:
            logger.debug(f"Rewrote {rewriter.count} worklet(s) in {display_path or path}")
        return output.decode("utf-8")

    def count_worklets(self, source: str, path: Optional[Path] = None) -> int:
        """Number of functions carrying the worklet directive."""
        if WORKLET_DIRECTIVE not in source:
            return 0
        tree = self.parser.parse(source.encode("utf-8"), path)
        return sum(1 for node in walk(tree.root_node) if worklet_directive(node) is not None)


def worklet_directive(node: TSNode) -> Optional[TSNode]:
    """The ``'worklet'`` directive statement of a function node, if it has one."""
    if node.type == "method_definition":
        if not _is_object_method(node):
            return None
    elif node.type not in FUNCTION_TYPES:
        return None
    body = node.child_by_field_name("body")
    if body is None or body.type != "statement_block":
        return None

    first = next((child for child in body.named_children if child.type != "comment"), None)
    if first is None or first.type != "expression_statement" or first.named_child_count == 0:
        return None
    if string_value(first.named_children[0]) != WORKLET_DIRECTIVE:
        return None
    return first


class _Rewriter:
    def __init__(self, data: bytes, display_path: str):
        self.data = data
        self.display_path = display_path
        self.count = 0

    def render(self, node: TSNode, skip: Optional[Tuple[int, int]] = None) -> bytes:
        """Source of ``node`` with every outermost worklet inside it rewritten.

        ``skip`` is a byte range dropped from the output (the directive of the
        function being rewritten).
        """
        pieces = []
        cursor = node.start_byte
        spans = [(w.start_byte, w.end_byte, self.rewrite(w)) for w in self._outermost_worklets(node)]
        if skip is not None:
            spans.append((skip[0], skip[1], b""))
        for start, end, replacement in sorted(spans, key=lambda span: span[0]):
            pieces.append(self.data[cursor:start])
            pieces.append(replacement)
            cursor = end
        pieces.append(self.data[cursor : node.end_byte])
        return b"".join(pieces)

    def rewrite(self, function: TSNode) -> bytes:
        directive = worklet_directive(function)
        body = function.child_by_field_name("body")
        self.count += 1

        is_method = function.type == "method_definition"
        if is_method:
            header = self._method_header(function)
            as_string = (header + self._strip_directives(function, body.start_byte)).decode("utf-8")
        else:
            header = self.data[function.start_byte : body.start_byte]
            as_string = self._strip_directives(function).decode("utf-8")
        rendered_body = self.render(body, skip=(directive.start_byte, directive.end_byte))
        function_code = (header + rendered_body).decode("utf-8")

        closure = ", ".join(free_identifiers(function))
        row, column = function.start_point[0] + 1, function.start_point[1]
        worklet_hash = int(hashlib.sha1(as_string.encode("utf-8")).hexdigest()[:13], 16)

        factory = (
            "(function () {\n"
            f"  const _f = {function_code};\n"
            f"  _f._closure = {{{closure}}};\n"
            f"  _f.asString = {json.dumps(as_string)};\n"
            f"  _f.__workletHash = {worklet_hash};\n"
            f"  _f.__location = {json.dumps(f'{self.display_path} ({row}:{column})')};\n"
            "  return _f;\n"
            "})()"
        )

        if is_method:
            name = function.child_by_field_name("name")
            return f"{node_text(name)}: {factory}".encode("utf-8")
        if function.type in DECLARATION_TYPES:
            name = function.child_by_field_name("name")
            if name is not None and not _is_default_export(function):
                return f"const {node_text(name)} = {factory};".encode("utf-8")
        return factory.encode("utf-8")

    def _method_header(self, method: TSNode) -> bytes:
        """``async function* name(params)`` header equivalent to an object method."""
        name = method.child_by_field_name("name")
        body = method.child_by_field_name("body")
        modifiers = {child.type for child in method.children if child.end_byte <= name.start_byte}
        prefix = "async " if "async" in modifiers else ""
        star = "*" if "*" in modifiers else ""
        label = node_text(name) if name.type == "property_identifier" else ""
        return f"{prefix}function{star} {label}".encode("utf-8") + self.data[name.end_byte : body.start_byte]

    def _strip_directives(self, function: TSNode, start: Optional[int] = None) -> bytes:
        """Original function source from ``start`` with all worklet directives removed."""
        directives = [d for d in (worklet_directive(n) for n in walk(function)) if d is not None]
        pieces = []
        cursor = function.start_byte if start is None else start
        for directive in sorted(directives, key=lambda d: d.start_byte):
            pieces.append(self.data[cursor : directive.start_byte])
            cursor = directive.end_byte
        pieces.append(self.data[cursor : function.end_byte])
        return b"".join(pieces)

    @staticmethod
    def _outermost_worklets(node: TSNode) -> List[TSNode]:
        found = []
        stack = list(reversed(node.children))
        while stack:
            current = stack.pop()
            if worklet_directive(current) is not None:
                found.append(current)
                continue
            stack.extend(reversed(current.children))
        return found


def _is_object_method(method: TSNode) -> bool:
    parent = method.parent
    if parent is None or parent.type != "object":
        return False
    return not any(child.type in ("get", "set") for child in method.children)


def _is_default_export(function: TSNode) -> bool:
    parent = function.parent
    if parent is None or parent.type != "export_statement":
        return False
    return any(child.type == "default" for child in parent.children)


def free_identifiers(function: TSNode) -> List[str]:
    """Identifiers a function reads from its enclosing scope, in first-use order."""
    declared = set()
    referenced = []
    for node in walk(function):
        if node.type == "shorthand_property_identifier_pattern":
            declared.add(node_text(node))
        elif node.type == "identifier":
            name = node_text(node)
            if _is_binding(node):
                declared.add(name)
            elif name not in referenced:
                referenced.append(name)
        elif node.type == "shorthand_property_identifier":
            name = node_text(node)
            if name not in referenced:
                referenced.append(name)

    return [name for name in referenced if name not in declared and name not in GLOBALS]


def _is_binding(node: TSNode) -> bool:
    parent = node.parent
    if parent is None:
        return False
    if parent.type in ("formal_parameters", "array_pattern", "rest_pattern"):
        return True
    fields = {
        "variable_declarator": "name",
        "function_declaration": "name",
        "generator_function_declaration": "name",
        "function_expression": "name",
        "function": "name",
        "class_declaration": "name",
        "class": "name",
        "assignment_pattern": "left",
        "pair_pattern": "value",
        "arrow_function": "parameter",
        "catch_clause": "parameter",
        "required_parameter": "pattern",
        "optional_parameter": "pattern",
    }
    field = fields.get(parent.type)
    return field is not None and same_node(parent.child_by_field_name(field), node)
