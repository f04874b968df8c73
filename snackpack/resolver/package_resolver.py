"""Package resolver - resolves the requested package and every package its imports reach."""

import asyncio
from pathlib import Path
from typing import Mapping, Optional, Tuple

from loguru import logger

from snackpack.config import INLINE_SOURCE_VERSIONS
from snackpack.errors import PlatformEntryMissing, ResolutionError
from snackpack.models import ModuleNode, Platform, ResolvedPackage
from snackpack.policy.healer import PeerDependencyHealer
from snackpack.registry.base import PackageRegistry
from snackpack.request import is_relative_specifier, split_specifier
from snackpack.resolver.entry_resolver import PlatformEntryResolver
from snackpack.resolver.file_resolver import normalize, resolve_file
from snackpack.resolver.package_cache import PackageCache


class PackageResolver:
    """Resolves packages and import specifiers for one bundling run.

    Installs go through the registry collaborator on a worker thread and are
    memoized per (name, version) in the run's PackageCache, so platform tasks
    running concurrently share a single install of each package.

    Version ranges for a dependency come from, in order: the importing
    package's manifest, the root manifest, the peer-dependency healer, and the
    configured versions for inline-source packages.
    """

    def __init__(
        self,
        registry: PackageRegistry,
        cache: Optional[PackageCache] = None,
        healer: Optional[PeerDependencyHealer] = None,
        entry_resolver: Optional[PlatformEntryResolver] = None,
        inline_source_versions: Mapping[str, str] = INLINE_SOURCE_VERSIONS,
    ):
        self.registry = registry
        self.cache = cache or PackageCache()
        self.healer = healer or PeerDependencyHealer()
        self.entry_resolver = entry_resolver or PlatformEntryResolver()
        self.inline_source_versions = inline_source_versions
        self.root: Optional[ResolvedPackage] = None

    async def resolve_root(self, name: str, constraint: str) -> ResolvedPackage:
        """Resolve and install the requested package. Any failure is fatal to the run."""
        package = await self.resolve_package(name, constraint)
        self.root = package
        logger.info(f"Resolved {name}@{constraint} to {package.version}")
        return package

    async def resolve_package(self, name: str, constraint: str) -> ResolvedPackage:
        version = await self.cache.get_or_resolve(
            name, constraint, lambda: asyncio.to_thread(self.registry.resolve_version, name, constraint)
        )
        return await self.cache.get_or_install(name, version, lambda: self._install(name, version))

    async def resolve_dependency(self, name: str, importer: ResolvedPackage) -> ResolvedPackage:
        """Resolve a package referenced by name from inside ``importer``."""
        root = self._require_root()
        if name == root.name:
            return root
        if name == importer.name:
            return importer
        return await self.resolve_package(name, self.version_range(name, importer))

    def version_range(self, name: str, importer: ResolvedPackage) -> str:
        root = self._require_root()
        version_range = (
            importer.manifest.declared_range(name)
            or root.manifest.declared_range(name)
            or self.healer.heal(name, importer.manifest, root.manifest)
            or self.inline_source_versions.get(name)
        )
        if not version_range:
            raise ResolutionError(
                f"Unable to resolve '{name}' imported from '{importer}': it is not a declared dependency", name
            )
        return version_range

    async def resolve_import(
        self, specifier: str, importer: ModuleNode, platform: Platform
    ) -> Tuple[ResolvedPackage, Path]:
        """Resolve an import specifier to its owning package and file.

        Bare specifiers with a subpath (``other/src/internal/file``) install
        ``other`` if needed and locate the file inside it directly, bypassing
        the package's declared entry point.
        """
        if is_relative_specifier(specifier):
            path = await asyncio.to_thread(resolve_file, normalize(importer.path.parent / specifier), platform)
            if path is None or not path.is_relative_to(importer.package.root):
                raise self._unresolvable(specifier, importer)
            return importer.package, path

        if specifier.startswith("/"):
            raise self._unresolvable(specifier, importer)

        name, subpath = split_specifier(specifier)
        package = await self.resolve_dependency(name, importer.package)
        if subpath:
            path = await asyncio.to_thread(resolve_file, normalize(package.root / subpath), platform)
            if path is None:
                raise self._unresolvable(specifier, importer)
            return package, path

        try:
            return package, await asyncio.to_thread(self.entry_resolver.resolve, package, platform)
        except PlatformEntryMissing:
            raise self._unresolvable(specifier, importer)

    async def _install(self, name: str, version: str) -> ResolvedPackage:
        try:
            root = await asyncio.to_thread(self.registry.install, name, version)
        except OSError as e:
            raise ResolutionError(f"Failed to install '{name}@{version}': {e}", name)
        manifest = await asyncio.to_thread(self.registry.read_manifest, name, version, root)
        logger.debug(f"Installed {name}@{version} at {root}")
        return ResolvedPackage(name=name, version=version, manifest=manifest, root=root)

    def _require_root(self) -> ResolvedPackage:
        if self.root is None:
            raise RuntimeError("resolve_root() must be called before resolving dependencies")
        return self.root

    @staticmethod
    def _unresolvable(specifier: str, importer: ModuleNode) -> ResolutionError:
        return ResolutionError(f"Unable to resolve module '{specifier}' from '{importer.display_path}'", specifier)
