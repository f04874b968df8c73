"""Bundler - parses a request, resolves the package and bundles it for each platform."""

import asyncio
from typing import Iterable, List, Optional

from loguru import logger

from snackpack.bundle import BundleAssembler, Compiler, ModuleCompiler
from snackpack.config import BundlerSettings
from snackpack.errors import PlatformEntryMissing
from snackpack.graph import GraphBuilder
from snackpack.models import BundleRequest, BundleResult, DependencyGraph, Platform, PlatformBundle, ResolvedPackage
from snackpack.parser import ImportAnalyzer, TreeSitterParser
from snackpack.policy import AliasTable, CoreModuleGuard, ExternalizationPolicy, PeerDependencyHealer
from snackpack.registry import NpmRegistry, PackageRegistry
from snackpack.request import build_request
from snackpack.resolver import PackageCache, PackageResolver, PlatformEntryResolver
from snackpack.transform import WorkletTransform


class Bundler:
    """Produces one standalone bundle per platform for an npm package.

    A Bundler holds only collaborators and static policy; every call to
    :meth:`bundle` gets its own package cache, healer and graphs, so calls
    share no mutable state.
    """

    def __init__(
        self,
        registry: Optional[PackageRegistry] = None,
        compiler: Optional[Compiler] = None,
        settings: Optional[BundlerSettings] = None,
    ):
        self.settings = settings or BundlerSettings.from_env()
        self.registry = registry or NpmRegistry(self.settings)
        self.compiler = compiler or ModuleCompiler()
        self.guard = CoreModuleGuard()
        self.aliases = AliasTable()
        self.entry_resolver = PlatformEntryResolver()
        self.parser = TreeSitterParser()

    async def bundle(
        self,
        identifier: str,
        platforms: Optional[Iterable[str]] = None,
        enable_worklet_transform: bool = False,
    ) -> BundleResult:
        """Bundle ``name[/subpath][@version]`` for the requested platforms (default: all).

        Raises:
            ParseError: malformed identifier or platform
            CoreModuleProhibited: the identifier names a reserved core module
            ResolutionError: the package or a required dependency cannot be resolved
        """
        request = build_request(identifier, platforms, enable_worklet_transform)
        self.guard.check(request)
        return await self.bundle_request(request)

    async def bundle_request(self, request: BundleRequest) -> BundleResult:
        healer = PeerDependencyHealer(self.settings.healed_peers)
        resolver = PackageResolver(self.registry, PackageCache(), healer, self.entry_resolver)
        root = await resolver.resolve_root(request.package_name, request.version_constraint)

        policy = ExternalizationPolicy(
            root.manifest,
            aliases=self.aliases,
            host_provided=self.settings.host_provided,
            healable=frozenset(healer.allow_list),
        )
        builder = GraphBuilder(
            resolver,
            policy,
            analyzer=ImportAnalyzer(self.parser),
            worklets=WorkletTransform(self.parser) if request.worklet_transform else None,
        )
        assembler = BundleAssembler(self.compiler, self.aliases)

        tasks = [
            asyncio.ensure_future(self._build_platform(builder, root, platform, request.subpath))
            for platform in request.platforms
        ]
        try:
            graphs: List[Optional[DependencyGraph]] = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        files = {}
        for platform, graph in zip(request.platforms, graphs):
            files[platform] = assembler.assemble(graph) if graph is not None else PlatformBundle.empty(platform)

        built = [graph for graph in graphs if graph is not None]
        stats = resolver.cache.get_stats()
        logger.info(
            f"Bundled {root} for {', '.join(p.value for p in request.platforms)} "
            f"({stats['packages']} packages, {stats['hits']} cache hits)"
        )
        return BundleResult(
            name=root.name,
            version=root.version,
            files=files,
            peerDependencies=assembler.collect_peer_dependencies(root, built, healer.healed),
        )

    @staticmethod
    async def _build_platform(
        builder: GraphBuilder, root: ResolvedPackage, platform: Platform, subpath: Optional[str]
    ) -> Optional[DependencyGraph]:
        try:
            return await builder.build(root, platform, subpath)
        except PlatformEntryMissing as e:
            logger.warning(f"{e}; emitting an empty {platform.value} bundle")
            return None


async def bundle(
    identifier: str,
    platforms: Optional[Iterable[str]] = None,
    enable_worklet_transform: bool = False,
    *,
    registry: Optional[PackageRegistry] = None,
    compiler: Optional[Compiler] = None,
    settings: Optional[BundlerSettings] = None,
) -> BundleResult:
    """Bundle a package with a one-off Bundler."""
    bundler = Bundler(registry=registry, compiler=compiler, settings=settings)
    return await bundler.bundle(identifier, platforms, enable_worklet_transform)
