"""Externalization policy - decides per module whether it is inlined or left to the host.

Decisions depend only on the module's identity (owning package + path inside
it, or the import specifier naming it), the root package's manifest and the
static tables. They never depend on traversal order, so a module reached via
two different import paths always gets the same decision.
"""

from typing import FrozenSet, Mapping, Optional, Tuple

from snackpack.config import HOST_PROVIDED_MODULES, INLINE_SOURCE_PATHS
from snackpack.models import DecisionKind, ExternalizationDecision, PackageManifest
from snackpack.policy.aliases import AliasTable
from snackpack.request import split_specifier


class ExternalizationPolicy:
    """Inline/External rules, evaluated in order:

    1. The root package itself is always inlined.
    2. Source files of host packages listed in ``inline_sources`` are inlined.
    3. Host-provided packages are external, even when declared as dependencies.
    4. Declared (non-peer) dependencies of the root package are inlined.
    5. Peer dependencies of the root package are external.
    6. Healable packages and transitive dependencies are inlined.

    External decisions carry the specifier verbatim, so ``lib/Sub`` and ``lib``
    are tracked as distinct externals.
    """

    def __init__(
        self,
        root: PackageManifest,
        aliases: Optional[AliasTable] = None,
        host_provided: FrozenSet[str] = HOST_PROVIDED_MODULES,
        inline_sources: Mapping[str, Tuple[str, ...]] = INLINE_SOURCE_PATHS,
        healable: FrozenSet[str] = frozenset(),
    ):
        self.root = root
        self.aliases = aliases or AliasTable()
        self.host_provided = host_provided
        self.inline_sources = inline_sources
        self.healable = healable

    def decide(self, specifier: str) -> ExternalizationDecision:
        """Decide for a bare import specifier such as ``lib`` or ``lib/sub/path``."""
        package_name, subpath = split_specifier(specifier)
        return self.decide_module(package_name, subpath, specifier)

    def decide_module(
        self, package_name: str, subpath: Optional[str], specifier: Optional[str] = None
    ) -> ExternalizationDecision:
        """Decide for a module identified by owning package and path inside it.

        ``specifier`` is what gets recorded for an external decision; it defaults
        to ``package_name/subpath``.
        """
        if specifier is None:
            specifier = f"{package_name}/{subpath}" if subpath else package_name

        if package_name == self.root.name:
            return _inline("root package")

        canonical = self.aliases.canonical(package_name)

        if subpath and self._is_inline_source(canonical, subpath):
            return _inline(f"source file of '{canonical}'")

        if canonical in self.host_provided or package_name in self.host_provided:
            return _external(specifier, "host-provided")

        if package_name in self.root.dependencies or canonical in self.root.dependencies:
            return _inline("dependency")

        if package_name in self.root.peer_dependencies or canonical in self.root.peer_dependencies:
            return _external(specifier, "peer dependency")

        if package_name in self.healable:
            return _inline("healed peer dependency")
        return _inline("transitive dependency")

    def _is_inline_source(self, package_name: str, subpath: str) -> bool:
        prefixes = self.inline_sources.get(package_name, ())
        return any(subpath.startswith(prefix) for prefix in prefixes)


def _inline(reason: str) -> ExternalizationDecision:
    return ExternalizationDecision(kind=DecisionKind.INLINE, reason=reason)


def _external(specifier: str, reason: str) -> ExternalizationDecision:
    return ExternalizationDecision(kind=DecisionKind.EXTERNAL, reason=reason, specifier=specifier)
