import json
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from snackpack.errors import ResolutionError
from snackpack.models import PackageManifest


class PackageRegistry(ABC):
    """
    Interface for resolving and installing packages.
    Implementations must be idempotent: installing the same (name, version)
    twice returns the same tree without fetching it again.
    """

    @abstractmethod
    def resolve_version(self, name: str, constraint: str) -> str:
        """
        Resolve a version constraint to an exact published version.

        Args:
            name: Package name, including scope
            constraint: Exact version, semver range or dist-tag

        Raises:
            ResolutionError: if the package or a matching version does not exist
        """
        pass

    @abstractmethod
    def install(self, name: str, version: str) -> Path:
        """
        Install a package and return the directory holding its package.json.

        Raises:
            ResolutionError: if the package cannot be fetched or unpacked
        """
        pass

    def read_manifest(self, name: str, version: str, root: Path) -> PackageManifest:
        """Read the installed package.json."""
        manifest_path = root / "package.json"
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ResolutionError(f"Invalid package.json for '{name}@{version}': {e}", name)

        data.setdefault("name", name)
        data.setdefault("version", version)
        try:
            return PackageManifest.model_validate(data)
        except ValidationError as e:
            raise ResolutionError(f"Invalid package.json for '{name}@{version}': {e}", name)
