"""Static bundling policy: core-module guard, aliases, peer healing and externalization."""

from .aliases import AliasTable
from .core_guard import CoreModuleGuard
from .externals import ExternalizationPolicy
from .healer import PeerDependencyHealer

__all__ = [
    "AliasTable",
    "CoreModuleGuard",
    "ExternalizationPolicy",
    "PeerDependencyHealer",
]
