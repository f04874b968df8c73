"""Bundle assembler - compiles platform graphs and aggregates peer dependencies."""

from typing import Dict, Iterable, Optional

from loguru import logger

from snackpack.bundle.compiler import Compiler, ModuleCompiler
from snackpack.models import DependencyGraph, PlatformBundle, ResolvedPackage
from snackpack.policy.aliases import AliasTable


class BundleAssembler:
    """Merges all inlined modules of a platform into one compiled artifact."""

    def __init__(self, compiler: Optional[Compiler] = None, aliases: Optional[AliasTable] = None):
        self.compiler = compiler or ModuleCompiler()
        self.aliases = aliases or AliasTable()

    def assemble(self, graph: DependencyGraph) -> PlatformBundle:
        units = [self.compiler.compile_module(module) for module in graph.modules.values()]
        code = self.compiler.link(units, graph.entry_id)
        bundle = PlatformBundle(
            platform=graph.platform,
            code=code,
            size=len(code.encode("utf-8")),
            externals=list(graph.externals),
        )
        logger.info(
            f"Bundled {graph.platform.value}: {len(units)} modules, {bundle.size} bytes, {len(bundle.externals)} externals"
        )
        return bundle

    def collect_peer_dependencies(
        self,
        root: ResolvedPackage,
        graphs: Iterable[DependencyGraph],
        healed: Iterable[str] = (),
    ) -> Dict[str, str]:
        """Peer dependencies the host must supply for the whole run.

        Root peers come first and win over peers declared by inlined
        dependencies. Platform aliases, healed packages and anything that ended
        up inlined are left out.
        """
        inlined = {root.name}
        packages = {}
        for graph in graphs:
            for key, package in graph.packages.items():
                packages[key] = package
                inlined.add(package.name)
        excluded = inlined | set(healed)

        peers: Dict[str, str] = {}
        sources = [root] + [p for key, p in sorted(packages.items()) if key != root.key]
        for package in sources:
            for name, requirement in self.aliases.filter_dependencies(package.manifest.peer_dependencies).items():
                if name not in excluded and name not in peers:
                    peers[name] = requirement
        return peers
