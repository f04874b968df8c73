"""Alias table - platform-variant package names and their canonical package."""

from typing import Dict, Mapping

from snackpack.config import PACKAGE_ALIASES


class AliasTable:
    """Maps platform variants (e.g. react-native-windows) to their canonical package.

    Only used for dependency accounting; aliasing never changes what is
    fetched or bundled for the requested package.
    """

    def __init__(self, aliases: Mapping[str, str] = PACKAGE_ALIASES):
        self._aliases = aliases

    def canonical(self, name: str) -> str:
        return self._aliases.get(name, name)

    def is_alias(self, name: str) -> bool:
        return name in self._aliases

    def filter_dependencies(self, dependencies: Mapping[str, str]) -> Dict[str, str]:
        """Drop dependencies that are only platform variants of another package."""
        return {name: spec for name, spec in dependencies.items() if not self.is_alias(name)}
