"""
Core models for the bundler.

Wire-facing records are pydantic models; per-run graph records are plain
dataclasses that live only for the duration of one bundling operation.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from snackpack.config import NATIVE_ENTRY_FIELDS, NATIVE_PLATFORMS, WEB_ENTRY_FIELDS


# ============================================================================
# Requests
# ============================================================================


class Platform(str, Enum):
    """Runtime targets a separate bundle is produced for"""

    ios = "ios"
    android = "android"
    web = "web"

    @property
    def is_native(self) -> bool:
        return self.value in NATIVE_PLATFORMS


class BundleRequest(BaseModel):
    """A parsed bundling request"""

    package_name: str = Field(..., min_length=1, description="npm package name, including scope")
    version_constraint: str = Field(default="latest", description="Exact version, range or dist-tag")
    subpath: Optional[str] = Field(default=None, description="Module path inside the package")
    platforms: List[Platform] = Field(default_factory=lambda: list(Platform))
    worklet_transform: bool = False

    @property
    def identifier(self) -> str:
        """Package name plus subpath, as the caller wrote it (without version)."""
        if self.subpath:
            return f"{self.package_name}/{self.subpath}"
        return self.package_name


# ============================================================================
# Packages
# ============================================================================


class PackageManifest(BaseModel):
    """The parts of package.json the resolver needs"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    version: str = "0.0.0"
    main: Optional[str] = None
    module: Optional[str] = None
    browser: Optional[Any] = None
    react_native: Optional[Any] = Field(default=None, alias="react-native")
    dependencies: Dict[str, str] = Field(default_factory=dict)
    peer_dependencies: Dict[str, str] = Field(default_factory=dict, alias="peerDependencies")
    optional_dependencies: Dict[str, str] = Field(default_factory=dict, alias="optionalDependencies")

    def entry_fields(self, platform: Platform) -> List[str]:
        """Entry paths declared for a platform, most specific first.

        Object-form ``browser``/``react-native`` maps are file replacement tables,
        not entry points, and are ignored here.
        """
        fields = NATIVE_ENTRY_FIELDS if platform.is_native else WEB_ENTRY_FIELDS
        values = {
            "react-native": self.react_native,
            "browser": self.browser,
            "module": self.module,
            "main": self.main,
        }
        entries = []
        for name in fields:
            value = values[name]
            if isinstance(value, str) and value and value not in entries:
                entries.append(value)
        return entries

    def declared_range(self, name: str) -> Optional[str]:
        """Version range declared for a dependency in any dependency section."""
        return (
            self.dependencies.get(name)
            or self.peer_dependencies.get(name)
            or self.optional_dependencies.get(name)
        )


@dataclass(frozen=True)
class ResolvedPackage:
    """An installed package at an exact version"""

    name: str
    version: str
    manifest: PackageManifest
    root: Path

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.version)

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


# ============================================================================
# Module graph
# ============================================================================


class DecisionKind(str, Enum):
    """Whether a module is embedded or left to the host"""

    INLINE = "inline"
    EXTERNAL = "external"


@dataclass(frozen=True)
class ExternalizationDecision:
    """Outcome of the externalization policy for one module"""

    kind: DecisionKind
    reason: str
    specifier: Optional[str] = None

    @property
    def is_external(self) -> bool:
        return self.kind == DecisionKind.EXTERNAL


@dataclass
class ModuleNode:
    """A module reached during graph traversal."""

    id: int
    path: Path
    package: ResolvedPackage
    source: str
    imports: List[str] = field(default_factory=list)
    # specifier -> module id (inlined) or external specifier
    dependency_map: Dict[str, Union[int, str]] = field(default_factory=dict)

    @property
    def relative_path(self) -> str:
        """Path inside its package, with forward slashes."""
        return self.path.relative_to(self.package.root).as_posix()

    @property
    def display_path(self) -> str:
        return f"{self.package.name}/{self.relative_path}"

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, ModuleNode):
            return False
        return self.id == other.id


@dataclass
class DependencyGraph:
    """Module graph for one platform, rooted at that platform's entry module."""

    platform: Platform
    modules: Dict[int, ModuleNode] = field(default_factory=dict)  # id -> module
    entry_id: Optional[int] = None

    # Indices for fast lookup
    modules_by_path: Dict[Path, int] = field(default_factory=dict)  # path -> id
    modules_by_package: Dict[Tuple[str, str], List[int]] = field(default_factory=dict)  # package key -> [ids]
    edges_from_module: Dict[int, List[int]] = field(default_factory=dict)  # id -> [ids]

    # Ordered, distinct external specifiers
    externals: List[str] = field(default_factory=list)

    def add_module(self, path: Path, package: ResolvedPackage, source: str) -> ModuleNode:
        """Add a module and update indices; the first module added is the entry."""
        module = ModuleNode(id=len(self.modules), path=path, package=package, source=source)
        self.modules[module.id] = module
        self.modules_by_path[path] = module.id
        self.modules_by_package.setdefault(package.key, []).append(module.id)
        if self.entry_id is None:
            self.entry_id = module.id
        return module

    def add_edge(self, source_id: int, target_id: int) -> None:
        targets = self.edges_from_module.setdefault(source_id, [])
        if target_id not in targets:
            targets.append(target_id)

    def add_external(self, specifier: str) -> None:
        if specifier not in self.externals:
            self.externals.append(specifier)

    def get_module_by_path(self, path: Path) -> Optional[ModuleNode]:
        module_id = self.modules_by_path.get(path)
        return None if module_id is None else self.modules[module_id]

    @property
    def packages(self) -> Dict[Tuple[str, str], ResolvedPackage]:
        """Packages with at least one inlined module."""
        packages = {}
        for module_ids in self.modules_by_package.values():
            package = self.modules[module_ids[0]].package
            packages[package.key] = package
        return packages


# ============================================================================
# Results
# ============================================================================


class PlatformBundle(BaseModel):
    """Compiled output for one platform"""

    platform: Platform
    code: Optional[str] = Field(default=None, description="Compiled bundle; absent when the platform has no entry")
    size: int = Field(default=0, ge=0, description="Size of the code in bytes")
    externals: List[str] = Field(default_factory=list, description="Import specifiers left to the host")

    @classmethod
    def empty(cls, platform: Platform) -> "PlatformBundle":
        return cls(platform=platform)


class BundleResult(BaseModel):
    """Complete result of one bundling operation"""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    version: str
    files: Dict[Platform, PlatformBundle]
    peer_dependencies: Dict[str, str] = Field(default_factory=dict, alias="peerDependencies")

    def to_json(self) -> Dict[str, Any]:
        """Caller-facing shape: ``files[platform] = {code?, size, externals}``."""
        return {
            "name": self.name,
            "version": self.version,
            "files": {
                platform.value: bundle.model_dump(mode="json", exclude={"platform"}, exclude_none=True)
                for platform, bundle in self.files.items()
            },
            "peerDependencies": dict(self.peer_dependencies),
        }
