"""Package registry collaborators: version resolution and on-disk installation."""

from .base import PackageRegistry
from .npm import NpmRegistry

__all__ = [
    "PackageRegistry",
    "NpmRegistry",
]
