from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from textwrap import dedent
from typing import Dict, List, Optional, Tuple

import pytest
from nodesemver import max_satisfying

from snackpack.config import BundlerSettings
from snackpack.errors import ResolutionError
from snackpack.registry.base import PackageRegistry


class FakeRegistry(PackageRegistry):
    """In-memory registry that installs published packages under a temp directory."""

    def __init__(self, root: Path, delay: float = 0.0):
        self.root = root
        self.delay = delay
        self.packages: Dict[str, Dict[str, Tuple[dict, Dict[str, str]]]] = {}
        self.install_calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def publish(self, name: str, version: str, files: Dict[str, str], **manifest) -> None:
        data = {"name": name, "version": version}
        data.update(manifest.pop("extra", {}))
        data.update(manifest)
        self.packages.setdefault(name, {})[version] = (data, files)

    def resolve_version(self, name: str, constraint: str) -> str:
        versions = self.packages.get(name)
        if not versions:
            raise ResolutionError(f"Package '{name}' not found in registry", name)
        if constraint in versions:
            return constraint
        if constraint == "latest":
            constraint = "*"
        version = max_satisfying(list(versions), constraint, loose=True)
        if not version:
            raise ResolutionError(f"No version of '{name}' satisfies '{constraint}'", name)
        return version

    def install(self, name: str, version: str) -> Path:
        with self._lock:
            self.install_calls.append((name, version))
        if self.delay:
            time.sleep(self.delay)

        manifest, files = self.packages[name][version]
        target = self.root / name / version / "package"
        target.mkdir(parents=True, exist_ok=True)
        (target / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
        for relative, content in files.items():
            path = target / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(content).lstrip("\n"), encoding="utf-8")
        return target

    def installed(self, name: str) -> List[str]:
        return [version for installed, version in self.install_calls if installed == name]


@pytest.fixture
def registry(tmp_path: Path) -> FakeRegistry:
    return FakeRegistry(tmp_path / "registry")


@pytest.fixture
def settings(tmp_path: Path) -> BundlerSettings:
    return BundlerSettings(cache_dir=tmp_path / "cache")


@pytest.fixture
def make_package(tmp_path: Path):
    """Write a package tree to disk and return it as a ResolvedPackage.

    Usage:
        package = make_package("lib", {"index.js": "export default 1;"}, main="index.js")
    """
    from snackpack.models import PackageManifest, ResolvedPackage

    def _make(name: str, files: Dict[str, str], version: str = "1.0.0", manifest: Optional[dict] = None, **fields):
        root = tmp_path / "packages" / name / version
        root.mkdir(parents=True, exist_ok=True)
        data = {"name": name, "version": version}
        data.update(manifest or {})
        data.update(fields)
        (root / "package.json").write_text(json.dumps(data), encoding="utf-8")
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(content).lstrip("\n"), encoding="utf-8")
        return ResolvedPackage(name=name, version=version, manifest=PackageManifest.model_validate(data), root=root)

    return _make


@pytest.fixture
def make_registry(tmp_path: Path):
    """Build additional registries, e.g. one that simulates slow installs."""

    def _make(name: str = "registry-2", delay: float = 0.0) -> FakeRegistry:
        return FakeRegistry(tmp_path / name, delay=delay)

    return _make
