"""Package, entry and module file resolution."""

from .entry_resolver import PlatformEntryResolver
from .file_resolver import platform_suffixes, resolve_file
from .package_cache import PackageCache
from .package_resolver import PackageResolver

__all__ = [
    "PackageCache",
    "PackageResolver",
    "PlatformEntryResolver",
    "platform_suffixes",
    "resolve_file",
]
