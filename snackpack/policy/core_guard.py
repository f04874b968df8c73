"""Core-module guard - rejects requests for reserved platform runtime packages."""

from typing import FrozenSet, Optional

from snackpack.config import CORE_MODULE_ROOTS, CORE_MODULES
from snackpack.errors import CoreModuleProhibited
from snackpack.models import BundleRequest


class CoreModuleGuard:
    """Rejects bundling of platform core modules.

    Runs on the identifier exactly as requested, before any alias
    normalization or resolution work.
    """

    def __init__(
        self,
        core_modules: FrozenSet[str] = CORE_MODULES,
        protected_roots: FrozenSet[str] = CORE_MODULE_ROOTS,
    ):
        self.core_modules = core_modules
        self.protected_roots = protected_roots

    def is_prohibited(self, package_name: str, subpath: Optional[str] = None) -> bool:
        if subpath:
            return package_name in self.protected_roots
        return package_name in self.core_modules

    def check(self, request: BundleRequest) -> None:
        """Raise CoreModuleProhibited naming the caller's identifier (subpath included)."""
        if self.is_prohibited(request.package_name, request.subpath):
            raise CoreModuleProhibited(request.identifier)
