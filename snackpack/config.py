"""Bundler configuration.

Static policy tables are immutable and loaded once at import time. Runtime
settings (registry location, cache directory, policy additions) come from the
environment through :class:`BundlerSettings`.
"""

import os
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Tuple

from pydantic import BaseModel, Field


# ============================================================================
# Platforms & file resolution
# ============================================================================

PLATFORMS: Tuple[str, ...] = ("ios", "android", "web")
NATIVE_PLATFORMS: FrozenSet[str] = frozenset({"ios", "android"})

# Tried in this order for every platform suffix
SOURCE_EXTENSIONS: Tuple[str, ...] = ("tsx", "ts", "jsx", "js", "mjs", "cjs", "json")

ASSET_EXTENSIONS: FrozenSet[str] = frozenset(
    {"png", "jpg", "jpeg", "gif", "webp", "bmp", "svg", "ttf", "otf", "mp3", "mp4", "wav"}
)

# Manifest fields consulted for the entry module, most specific first
NATIVE_ENTRY_FIELDS: Tuple[str, ...] = ("react-native", "module", "main")
WEB_ENTRY_FIELDS: Tuple[str, ...] = ("browser", "module", "main")


# ============================================================================
# Core-module guard
# ============================================================================

# Requests naming one of these packages exactly are rejected
CORE_MODULES: FrozenSet[str] = frozenset(
    {
        "expo",
        "react-native",
        "react-native-web",
        "react-native-windows",
        "react-native-macos",
    }
)

# Requests for any path beneath these packages are rejected as well.
# react-native-web is absent: its source files are bundled on their own.
CORE_MODULE_ROOTS: FrozenSet[str] = frozenset(
    {
        "expo",
        "react-native",
        "react-native-windows",
        "react-native-macos",
    }
)


# ============================================================================
# Alias table
# ============================================================================

PACKAGE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "react-native-windows": "react-native",
        "react-native-macos": "react-native",
        "react-native-tvos": "react-native",
    }
)


# ============================================================================
# Externalization
# ============================================================================

# Supplied by the host runtime; never bundled unless requested as the root
HOST_PROVIDED_MODULES: FrozenSet[str] = frozenset(
    {
        "react",
        "react-dom",
        "react-native",
        "react-native-web",
        "expo",
        "expo-app-auth",
        "expo-asset",
        "expo-constants",
        "expo-file-system",
        "expo-font",
        "expo-linear-gradient",
        "expo-modules-core",
        "expo-status-bar",
        "expo-web-browser",
        "@expo/vector-icons",
        "@react-native-community/masked-view",
        "react-native-gesture-handler",
        "react-native-reanimated",
        "react-native-safe-area-context",
        "react-native-screens",
        "react-native-svg",
    }
)

# Host-provided packages whose source files are still inlined when imported
# by path. Maps package name -> path prefixes inside the package.
INLINE_SOURCE_PATHS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "react-native-web": ("src/", "dist/"),
    }
)

# Version range installed for an inline-source package the importer does not declare
INLINE_SOURCE_VERSIONS: Mapping[str, str] = MappingProxyType(
    {
        "react-native-web": "*",
    }
)


# ============================================================================
# Peer-dependency healer
# ============================================================================

# Commonly used but undeclared packages, mapped to the range installed for them
HEALED_PEER_DEPENDENCIES: Mapping[str, str] = MappingProxyType(
    {
        "prop-types": "*",
    }
)


# ============================================================================
# Runtime settings
# ============================================================================


def _split_list(value: str) -> FrozenSet[str]:
    return frozenset(item.strip() for item in value.split(",") if item.strip())


class BundlerSettings(BaseModel):
    """Runtime settings for one bundler instance."""

    registry_url: str = Field(default="https://registry.npmjs.org", description="npm registry base URL")
    cache_dir: Path = Field(
        default_factory=lambda: Path.home() / ".cache" / "snackpack", description="Package install directory"
    )
    http_timeout: float = Field(default=60.0, description="Registry request timeout in seconds")
    healed_peers: Dict[str, str] = Field(default_factory=lambda: dict(HEALED_PEER_DEPENDENCIES))
    extra_externals: FrozenSet[str] = Field(default_factory=frozenset)

    @property
    def host_provided(self) -> FrozenSet[str]:
        return HOST_PROVIDED_MODULES | self.extra_externals

    @classmethod
    def from_env(cls) -> "BundlerSettings":
        """Build settings from ``SNACKPACK_*`` environment variables."""
        healed = dict(HEALED_PEER_DEPENDENCIES)
        for name in _split_list(os.getenv("SNACKPACK_HEALED_PEERS", "")):
            healed.setdefault(name, "*")

        values = {
            "healed_peers": healed,
            "extra_externals": _split_list(os.getenv("SNACKPACK_EXTRA_EXTERNALS", "")),
        }
        if os.getenv("SNACKPACK_REGISTRY_URL"):
            values["registry_url"] = os.environ["SNACKPACK_REGISTRY_URL"].rstrip("/")
        if os.getenv("SNACKPACK_CACHE_DIR"):
            values["cache_dir"] = Path(os.environ["SNACKPACK_CACHE_DIR"]).expanduser()
        if os.getenv("SNACKPACK_HTTP_TIMEOUT"):
            values["http_timeout"] = float(os.environ["SNACKPACK_HTTP_TIMEOUT"])
        return cls(**values)
