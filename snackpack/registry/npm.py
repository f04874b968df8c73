"""npm registry client - resolves versions and installs package tarballs into a local cache."""

import io
import shutil
import tarfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from loguru import logger
from nodesemver import max_satisfying

from snackpack.config import BundlerSettings
from snackpack.errors import ResolutionError
from snackpack.registry.base import PackageRegistry

INSTALL_MARKER = ".snackpack-installed"


class NpmRegistry(PackageRegistry):
    """Registry backed by the npm HTTP API.

    Packages are unpacked to ``<cache_dir>/<name>/<version>/``. The marker file
    written after a successful unpack makes repeated installs free, across runs
    and across processes sharing the cache directory.
    """

    def __init__(self, settings: Optional[BundlerSettings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or BundlerSettings.from_env()
        self.session = session or requests.Session()
        self._packuments: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._install_locks: Dict[str, threading.Lock] = {}

    def resolve_version(self, name: str, constraint: str) -> str:
        packument = self._packument(name)
        versions = packument.get("versions") or {}
        dist_tags = packument.get("dist-tags") or {}

        if constraint in dist_tags:
            return dist_tags[constraint]
        if constraint in versions:
            return constraint

        try:
            version = max_satisfying(list(versions), constraint, loose=True)
        except (ValueError, TypeError) as e:
            raise ResolutionError(f"Invalid version '{constraint}' for '{name}': {e}", name)
        if not version:
            raise ResolutionError(f"No version of '{name}' satisfies '{constraint}'", name)
        return version

    def install(self, name: str, version: str) -> Path:
        target = self.settings.cache_dir / name / version
        with self._install_lock(f"{name}@{version}"):
            marker = target / INSTALL_MARKER
            if marker.exists():
                return target / marker.read_text(encoding="utf-8").strip()

            tarball_url = self._tarball_url(name, version)
            logger.info(f"Installing {name}@{version}")
            archive = self._download(tarball_url, name)

            if target.exists():
                shutil.rmtree(target)
            target.mkdir(parents=True)
            package_dir = self._extract(archive, target, name)
            marker.write_text(package_dir, encoding="utf-8")
            return target / package_dir

    def _packument(self, name: str) -> Dict[str, Any]:
        with self._lock:
            cached = self._packuments.get(name)
        if cached is not None:
            return cached

        url = f"{self.settings.registry_url}/{quote(name, safe='@')}"
        try:
            response = self.session.get(url, timeout=self.settings.http_timeout)
            if response.status_code == 404:
                raise ResolutionError(f"Package '{name}' not found in registry", name)
            response.raise_for_status()
            packument = response.json()
        except requests.exceptions.RequestException as e:
            raise ResolutionError(f"Failed to fetch '{name}' from registry: {e}", name)
        except ValueError as e:
            raise ResolutionError(f"Invalid registry response for '{name}': {e}", name)

        with self._lock:
            self._packuments[name] = packument
        return packument

    def _tarball_url(self, name: str, version: str) -> str:
        metadata = (self._packument(name).get("versions") or {}).get(version)
        if not metadata:
            raise ResolutionError(f"Version '{version}' of '{name}' not found in registry", name)
        try:
            return metadata["dist"]["tarball"]
        except KeyError:
            raise ResolutionError(f"Registry entry for '{name}@{version}' has no tarball", name)

    def _download(self, url: str, name: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.settings.http_timeout)
            response.raise_for_status()
            return response.content
        except requests.exceptions.RequestException as e:
            raise ResolutionError(f"Failed to download '{name}': {e}", name)

    def _extract(self, archive: bytes, target: Path, name: str) -> str:
        """Unpack a tarball into ``target``; return the top-level directory name."""
        try:
            with tarfile.open(fileobj=io.BytesIO(archive), mode="r:*") as tar:
                members = [m for m in tar.getmembers() if _is_safe_member(m)]
                tar.extractall(target, members=members, filter="data")
        except (tarfile.TarError, OSError) as e:
            raise ResolutionError(f"Failed to unpack '{name}': {e}", name)

        # npm tarballs use "package/" but some publishers use other top-level names
        if (target / "package").is_dir():
            return "package"
        directories = [p.name for p in target.iterdir() if p.is_dir()]
        if len(directories) != 1:
            raise ResolutionError(f"Unexpected tarball layout for '{name}'", name)
        return directories[0]

    def _install_lock(self, key: str) -> threading.Lock:
        with self._lock:
            return self._install_locks.setdefault(key, threading.Lock())


def _is_safe_member(member: tarfile.TarInfo) -> bool:
    path = Path(member.name)
    if path.is_absolute() or ".." in path.parts:
        return False
    return member.isfile() or member.isdir()
