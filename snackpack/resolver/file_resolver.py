"""Module file resolution with platform-suffix precedence."""

import json
import os
from pathlib import Path
from typing import List, Optional

from snackpack.config import ASSET_EXTENSIONS, NATIVE_ENTRY_FIELDS, SOURCE_EXTENSIONS, WEB_ENTRY_FIELDS
from snackpack.models import Platform

ASSET_SCALES = ("@2x", "@3x", "@1x", "@1.5x", "@4x")


def platform_suffixes(platform: Platform) -> List[str]:
    """File suffixes to try, most specific first.

    ios: ``.ios.tsx ... .ios.js``, ``.native.tsx ... .native.js``, ``.tsx ... .js``
    web: ``.web.tsx ... .web.js``, ``.tsx ... .js``
    """
    variants = [platform.value]
    if platform.is_native:
        variants.append("native")

    suffixes = [f".{variant}.{ext}" for variant in variants for ext in SOURCE_EXTENSIONS]
    suffixes.extend(f".{ext}" for ext in SOURCE_EXTENSIONS)
    return suffixes


def normalize(path: Path) -> Path:
    """Collapse ``.`` and ``..`` segments without following symlinks."""
    return Path(os.path.normpath(path))


def is_asset(path: Path) -> bool:
    return path.suffix[1:].lower() in ASSET_EXTENSIONS


def resolve_file(base: Path, platform: Platform, _depth: int = 0) -> Optional[Path]:
    """Resolve a module path (without or with extension) to an existing file.

    Order: exact file, ``base + suffix`` per platform precedence, then a
    directory's package.json ``main`` or its ``index`` module.
    """
    if _depth > 8:
        return None

    if base.is_file() and (base.suffix[1:] in SOURCE_EXTENSIONS or is_asset(base)):
        return base

    for suffix in platform_suffixes(platform):
        candidate = base.with_name(base.name + suffix)
        if candidate.is_file():
            return candidate

    if is_asset(base):
        return _resolve_scaled_asset(base)

    if base.is_dir():
        main = _directory_main(base, platform)
        if main:
            resolved = resolve_file(normalize(base / main), platform, _depth + 1)
            if resolved:
                return resolved
        return resolve_file(base / "index", platform, _depth + 1)

    return None


def _resolve_scaled_asset(base: Path) -> Optional[Path]:
    # image.png may only ship as image@2x.png
    for scale in ASSET_SCALES:
        candidate = base.with_name(f"{base.stem}{scale}{base.suffix}")
        if candidate.is_file():
            return candidate
    return None


def _directory_main(directory: Path, platform: Platform) -> Optional[str]:
    manifest = directory / "package.json"
    if not manifest.is_file():
        return None
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    for field in NATIVE_ENTRY_FIELDS if platform.is_native else WEB_ENTRY_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value:
            return value
    return None
