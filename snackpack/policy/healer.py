"""Peer-dependency healer - supplies commonly used but undeclared dependencies."""

from typing import Mapping, Optional, Set

from loguru import logger

from snackpack.config import HEALED_PEER_DEPENDENCIES
from snackpack.models import PackageManifest


class PeerDependencyHealer:
    """Resolves allow-listed packages that a package uses without declaring them.

    Healed packages are installed and inlined like regular dependencies. They
    are never externalized and never reported as peer dependencies. One healer
    belongs to one bundling run.
    """

    def __init__(self, allow_list: Mapping[str, str] = HEALED_PEER_DEPENDENCIES):
        self.allow_list = dict(allow_list)
        self.healed: Set[str] = set()

    def can_heal(self, name: str) -> bool:
        return name in self.allow_list

    def heal(self, name: str, importer: PackageManifest, root: PackageManifest) -> Optional[str]:
        """Return the version range to install for ``name``, or None if it cannot be healed.

        Only applies when neither the importing package nor the root package
        declares the dependency in any form.
        """
        if not self.can_heal(name):
            return None
        if importer.declared_range(name) or root.declared_range(name):
            return None

        if name not in self.healed:
            logger.warning(f"'{importer.name}' uses undeclared dependency '{name}', resolving it as '{self.allow_list[name]}'")
            self.healed.add(name)
        return self.allow_list[name]
