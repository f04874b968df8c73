"""Platform entry resolution - finds the module each platform bundle starts from."""

from pathlib import Path
from typing import List, Optional

from loguru import logger

from snackpack.errors import PlatformEntryMissing
from snackpack.models import Platform, ResolvedPackage
from snackpack.resolver.file_resolver import normalize, resolve_file


class PlatformEntryResolver:
    """Locates the entry module of a package for one platform.

    The manifest's platform entry fields are tried first (``react-native`` on
    native, ``browser`` on web, then ``module`` and ``main``), then the package
    ``index``. Each candidate goes through platform-suffix precedence, so
    ``main: "src/index"`` resolves to ``src/index.ios.js`` before
    ``src/index.js``. A requested subpath replaces the manifest entries.
    """

    def candidates(self, package: ResolvedPackage, platform: Platform, subpath: Optional[str] = None) -> List[Path]:
        if subpath:
            return [normalize(package.root / subpath)]

        entries = [normalize(package.root / entry) for entry in package.manifest.entry_fields(platform)]
        index = package.root / "index"
        if index not in entries:
            entries.append(index)
        return entries

    def resolve(self, package: ResolvedPackage, platform: Platform, subpath: Optional[str] = None) -> Path:
        """Return the entry file, or raise PlatformEntryMissing."""
        for candidate in self.candidates(package, platform, subpath):
            entry = resolve_file(candidate, platform)
            if entry is not None:
                logger.debug(f"Entry for {package} on {platform.value}: {entry}")
                return entry

        identifier = f"{package.name}/{subpath}" if subpath else package.name
        raise PlatformEntryMissing(identifier, platform.value)
