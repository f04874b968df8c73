"""Request parsing - turns ``name[/sub/path][@version]`` into a BundleRequest."""

import re
from typing import Iterable, Optional, Tuple

from snackpack.errors import ParseError
from snackpack.models import BundleRequest, Platform

_NAME_SEGMENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._~-]*$")
_SCOPE_SEGMENT = re.compile(r"^@[A-Za-z0-9][A-Za-z0-9._~-]*$")


def split_specifier(specifier: str) -> Tuple[str, Optional[str]]:
    """Split a bare module specifier into package name and subpath.

    ``@scope/name/sub/path`` -> (``@scope/name``, ``sub/path``)
    ``name/sub`` -> (``name``, ``sub``)
    """
    parts = specifier.split("/")
    count = 2 if specifier.startswith("@") else 1
    name = "/".join(parts[:count])
    subpath = "/".join(parts[count:]) or None
    return name, subpath


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../") or specifier in (".", "..")


def parse_request(identifier: str) -> Tuple[str, str, Optional[str]]:
    """Parse a request string into (package name, version constraint, subpath).

    A missing version means ``latest``. Any malformed name raises
    ``ParseError("Failed to parse request")``; callers match on that message.
    """
    text = (identifier or "").strip()
    at = text.rfind("@")
    if at > 0:
        spec, version = text[:at], text[at + 1 :]
    else:
        spec, version = text, ""

    if not spec:
        raise ParseError()

    name, subpath = split_specifier(spec)
    segments = name.split("/")
    if name.startswith("@"):
        if len(segments) != 2 or not _SCOPE_SEGMENT.match(segments[0]) or not _NAME_SEGMENT.match(segments[1]):
            raise ParseError()
    elif not _NAME_SEGMENT.match(name):
        raise ParseError()

    if subpath is not None:
        subpath = subpath.rstrip("/")
        if any(part in ("", ".", "..") for part in subpath.split("/")):
            raise ParseError()

    return name, version.strip() or "latest", subpath


def parse_platforms(platforms: Optional[Iterable[str]]) -> list:
    """Normalize a platform list, keeping caller order and dropping duplicates."""
    if platforms is None:
        return list(Platform)

    result = []
    for value in platforms:
        try:
            platform = Platform(value)
        except ValueError:
            raise ParseError(f"Unsupported platform '{value}'")
        if platform not in result:
            result.append(platform)
    if not result:
        raise ParseError("No platforms requested")
    return result


def build_request(
    identifier: str,
    platforms: Optional[Iterable[str]] = None,
    enable_worklet_transform: bool = False,
) -> BundleRequest:
    """Parse the identifier and platform list into a BundleRequest."""
    name, version, subpath = parse_request(identifier)
    return BundleRequest(
        package_name=name,
        version_constraint=version,
        subpath=subpath,
        platforms=parse_platforms(platforms),
        worklet_transform=enable_worklet_transform,
    )
