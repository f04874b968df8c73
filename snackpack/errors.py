"""Error types raised by the bundler.

``str(error)`` is always the exact message surfaced to callers, so front ends
can match on it without inspecting the type.
"""

from typing import Optional


class BundlerError(Exception):
    """Base class for all bundling failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ParseError(BundlerError):
    """The request string could not be parsed into a package identifier."""

    def __init__(self, message: str = "Failed to parse request"):
        super().__init__(message)


class CoreModuleProhibited(BundlerError):
    """The request targets a reserved platform core module (or a path beneath it)."""

    def __init__(self, identifier: str):
        super().__init__(f"Bundling core module '{identifier}' is prohibited")
        self.identifier = identifier


class ResolutionError(BundlerError):
    """A package or module could not be resolved, fetched or installed."""

    def __init__(self, message: str, specifier: Optional[str] = None):
        super().__init__(message)
        self.specifier = specifier


class PlatformEntryMissing(BundlerError):
    """No entry module exists for one platform.

    Never surfaced from ``bundle``; the platform is emitted as an empty bundle.
    """

    def __init__(self, package: str, platform: str):
        super().__init__(f"No entry point found for '{package}' on platform '{platform}'")
        self.package = package
        self.platform = platform
