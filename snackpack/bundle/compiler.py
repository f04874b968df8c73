"""Module compiler - turns inlined modules into one module-registry bundle.

The default compiler does not lower modern syntax (JSX, TypeScript, ES
modules); that belongs to a JavaScript toolchain plugged in through the
:class:`Compiler` interface. It wraps each module in a registry definition
whose dependency map routes every import specifier either to an inlined
module id or to the host's external loader.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Union

from snackpack.models import ModuleNode
from snackpack.resolver.file_resolver import is_asset

PRELUDE = """(function (global) {
  var modules = Object.create(null);
  global.__d = function (factory, id, dependencyMap, path) {
    modules[id] = { factory: factory, dependencyMap: dependencyMap, path: path, module: null };
  };
  global.__r = function (id) {
    var record = modules[id];
    if (record.module) {
      return record.module.exports;
    }
    var module = { exports: {} };
    record.module = module;
    var require = function (specifier) {
      var target = record.dependencyMap[specifier];
      return typeof target === "number" ? global.__r(target) : global.__snackpackRequireExternal(target);
    };
    record.factory.call(module.exports, global, require, module, module.exports);
    return module.exports;
  };
})(typeof globalThis !== "undefined" ? globalThis : this);
"""


@dataclass(frozen=True)
class CompiledModule:
    """One compiled module unit"""

    id: int
    path: str
    code: str


class Compiler(ABC):
    """
    Interface for the JavaScript toolchain.
    Must be deterministic: identical modules compile to identical code.
    """

    @abstractmethod
    def compile_module(self, module: ModuleNode) -> CompiledModule:
        """Compile one module's (already transformed) source."""
        pass

    @abstractmethod
    def link(self, units: List[CompiledModule], entry_id: int) -> str:
        """Join compiled units into a single bundle that runs the entry module."""
        pass


class ModuleCompiler(Compiler):
    """Default compiler producing a ``__d``/``__r`` module-registry bundle."""

    def compile_module(self, module: ModuleNode) -> CompiledModule:
        dependency_map: Dict[str, Union[int, str]] = dict(sorted(module.dependency_map.items()))

        if is_asset(module.path):
            body = f"module.exports = {json.dumps({'uri': module.display_path})};"
        elif module.path.suffix == ".json":
            body = f"module.exports = {module.source.strip() or 'null'};"
        else:
            body = module.source

        code = (
            f"__d(function (global, require, module, exports) {{\n{body}\n}}, "
            f"{module.id}, {json.dumps(dependency_map)}, {json.dumps(module.display_path)});\n"
        )
        return CompiledModule(id=module.id, path=module.display_path, code=code)

    def link(self, units: List[CompiledModule], entry_id: int) -> str:
        parts = [PRELUDE]
        parts.extend(unit.code for unit in sorted(units, key=lambda unit: unit.id))
        parts.append(f"__r({entry_id});\n")
        return "".join(parts)
