import json
import re
from pathlib import Path

import pytest

from snackpack.parser import ImportAnalyzer, TreeSitterParser
from snackpack.transform import WorkletTransform


@pytest.fixture(scope="module")
def transform():
    return WorkletTransform(TreeSitterParser())


HANDLERS = """\
import { useSharedValue } from 'react-native-reanimated';

const offset = useSharedValue(0);

function onScroll(event) {
  'worklet';
  offset.value = event.contentOffset.y;
}

const clamp = (value, lower, upper) => {
  'worklet';
  return Math.min(Math.max(value, lower), upper);
};

export const onEnd = function () {
  "worklet";
  offset.value = clamp(offset.value, 0, 100);
};

function plain() {
  return 'worklet';
}
"""


def _hash_count(code: str) -> int:
    return len(re.findall(r"__workletHash\s*=", code))


def test_one_hash_marker_per_worklet(transform):
    output = transform.transform(HANDLERS, Path("handlers.js"), "lib/handlers.js")

    assert transform.count_worklets(HANDLERS, Path("handlers.js")) == 3
    assert _hash_count(output) == 3


def test_directives_are_removed(transform):
    output = transform.transform(HANDLERS, Path("handlers.js"))

    assert re.search(r"^\s*['\"]worklet['\"];?\s*$", output, re.MULTILINE) is None
    # Plain string returns are not directives
    assert "return 'worklet';" in output


def test_declaration_becomes_binding_of_same_name(transform):
    output = transform.transform(HANDLERS, Path("handlers.js"))

    assert "const onScroll = (function () {" in output
    assert "export const onEnd = (function () {" in output
    assert output.startswith("import { useSharedValue } from 'react-native-reanimated';")


def test_closure_captures_free_variables_only(transform):
    output = transform.transform(HANDLERS, Path("handlers.js"))

    assert "_f._closure = {offset};" in output
    assert "_f._closure = {};" in output  # clamp only uses params and Math
    assert "_f._closure = {offset, clamp};" in output


def test_as_string_and_location(transform):
    source = "function f(a) {\n  'worklet';\n  return a + 1;\n}\n"
    output = transform.transform(source, Path("f.js"), "lib/f.js")

    match = re.search(r"_f\.asString = (\".*\");", output)
    as_string = json.loads(match.group(1))
    assert "worklet" not in as_string
    assert as_string.startswith("function f(a) {")
    assert "return a + 1;" in as_string
    assert '_f.__location = "lib/f.js (1:0)";' in output


def test_hash_is_stable_for_identical_sources(transform):
    source = "export function f() {\n  'worklet';\n  return 1;\n}\n"
    first = transform.transform(source, Path("a.js"))
    second = transform.transform(source, Path("b.js"))

    hashes = re.findall(r"__workletHash = (\d+);", first)
    assert hashes == re.findall(r"__workletHash = (\d+);", second)


def test_nested_worklets_are_each_rewritten(transform):
    source = """\
function outer() {
  'worklet';
  const inner = () => {
    'worklet';
    return 1;
  };
  return inner();
}
"""
    output = transform.transform(source, Path("nested.js"))

    assert transform.count_worklets(source) == 2
    assert _hash_count(output) == 2
    assert "'worklet'" not in output


def test_export_default_declaration_stays_an_expression(transform):
    source = "export default function handler() {\n  'worklet';\n  return 1;\n}\n"
    output = transform.transform(source, Path("default.js"))

    assert output.startswith("export default (function () {")
    assert "const handler =" not in output


def test_source_without_worklets_is_unchanged(transform):
    source = "import x from 'y';\nexport default x;\n"
    assert transform.transform(source, Path("plain.js")) is source
    assert transform.count_worklets(source) == 0


def test_transform_is_idempotent(transform):
    once = transform.transform(HANDLERS, Path("handlers.js"))
    twice = transform.transform(once, Path("handlers.js"))

    assert twice == once
    assert _hash_count(twice) == 3


def test_typescript_worklet(transform):
    source = "export const scale = (x: number): number => {\n  'worklet';\n  return x * factor;\n};\n"
    output = transform.transform(source, Path("scale.ts"))

    assert _hash_count(output) == 1
    assert "_f._closure = {factor};" in output


def test_transformed_code_keeps_imports(transform):
    output = transform.transform(HANDLERS, Path("handlers.js"))
    assert ImportAnalyzer(TreeSitterParser()).analyze(output, Path("handlers.js")) == ["react-native-reanimated"]


def test_object_methods_become_factory_properties(transform):
    source = """\
const handlers = {
  onStart(event) {
    'worklet';
    offset.value = event.x;
  },
  async onEnd() {
    'worklet';
    return offset.value;
  },
  get current() {
    'worklet';
    return offset.value;
  },
};
"""
    output = transform.transform(source, Path("handlers.js"))

    assert transform.count_worklets(source) == 2
    assert _hash_count(output) == 2
    assert "onStart: (function () {" in output
    assert "const _f = function onStart(event) {" in output
    assert "onEnd: (function () {" in output
    assert "const _f = async function onEnd() {" in output
    assert "_f._closure = {offset};" in output
    # Accessors cannot be replaced by a plain property
    assert "get current() {\n    'worklet';" in output

    match = re.search(r"_f\.asString = (\".*\");", output)
    assert json.loads(match.group(1)).startswith("function onStart(event) {")
