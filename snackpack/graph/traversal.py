"""Graph traversal - builds one platform's module graph from its entry point."""

import asyncio
from collections import deque
from pathlib import Path
from typing import Deque, Optional

from loguru import logger

from snackpack.models import DependencyGraph, ModuleNode, Platform, ResolvedPackage
from snackpack.parser import ImportAnalyzer
from snackpack.policy.externals import ExternalizationPolicy
from snackpack.request import is_relative_specifier
from snackpack.resolver.file_resolver import is_asset
from snackpack.resolver.package_resolver import PackageResolver
from snackpack.transform import WorkletTransform

SCRIPT_SUFFIXES = frozenset({".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"})


class GraphBuilder:
    """Walks imports breadth-first from a platform entry module.

    Every import is classified by the externalization policy before it is
    followed: external specifiers are recorded on the graph and never
    resolved, inline ones are resolved, read, optionally worklet-transformed
    and queued. A visited index keyed by file path makes import cycles
    terminate and keeps each module in the graph once.
    """

    def __init__(
        self,
        resolver: PackageResolver,
        policy: ExternalizationPolicy,
        analyzer: Optional[ImportAnalyzer] = None,
        worklets: Optional[WorkletTransform] = None,
    ):
        self.resolver = resolver
        self.policy = policy
        self.analyzer = analyzer or ImportAnalyzer()
        self.worklets = worklets

    async def build(self, root: ResolvedPackage, platform: Platform, subpath: Optional[str] = None) -> DependencyGraph:
        """Build the graph; raises PlatformEntryMissing when the platform has no entry."""
        entry = await asyncio.to_thread(self.resolver.entry_resolver.resolve, root, platform, subpath)
        graph = DependencyGraph(platform=platform)
        queue: Deque[ModuleNode] = deque([await self._add_module(graph, root, entry)])

        while queue:
            module = queue.popleft()
            for specifier in module.imports:
                await self._follow(graph, module, specifier, queue)

        logger.debug(f"Built {platform.value} graph: {len(graph.modules)} modules, {len(graph.externals)} externals")
        return graph

    async def _follow(self, graph: DependencyGraph, module: ModuleNode, specifier: str, queue: Deque[ModuleNode]) -> None:
        if is_relative_specifier(specifier):
            package, path = await self.resolver.resolve_import(specifier, module, graph.platform)
            subpath = path.relative_to(package.root).as_posix()
            decision = self.policy.decide_module(package.name, subpath, f"{package.name}/{_strip_extension(subpath)}")
        else:
            decision = self.policy.decide(specifier)
            package = path = None
            if not decision.is_external:
                package, path = await self.resolver.resolve_import(specifier, module, graph.platform)

        if decision.is_external:
            graph.add_external(decision.specifier)
            module.dependency_map[specifier] = decision.specifier
            logger.debug(f"{module.display_path}: '{specifier}' is external ({decision.reason})")
            return

        target = graph.get_module_by_path(path)
        if target is None:
            target = await self._add_module(graph, package, path)
            queue.append(target)
        module.dependency_map[specifier] = target.id
        graph.add_edge(module.id, target.id)

    async def _add_module(self, graph: DependencyGraph, package: ResolvedPackage, path: Path) -> ModuleNode:
        if is_asset(path):
            return graph.add_module(path, package, "")

        source = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
        module = graph.add_module(path, package, source)
        if path.suffix not in SCRIPT_SUFFIXES:
            return module

        if self.worklets is not None:
            module.source = self.worklets.transform(source, path, module.display_path)
        module.imports = self.analyzer.analyze(module.source, path)
        return module


def _strip_extension(subpath: str) -> str:
    stem, dot, _ = subpath.rpartition(".")
    return stem if dot and "/" not in subpath[len(stem):] else subpath
