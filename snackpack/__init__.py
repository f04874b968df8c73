"""snackpack - multi-platform bundler for npm packages."""

from .bundler import Bundler, bundle
from .errors import BundlerError, CoreModuleProhibited, ParseError, PlatformEntryMissing, ResolutionError
from .models import BundleResult, Platform, PlatformBundle

__version__ = "1.0.0"

__all__ = [
    "Bundler",
    "bundle",
    "BundleResult",
    "BundlerError",
    "CoreModuleProhibited",
    "ParseError",
    "Platform",
    "PlatformBundle",
    "PlatformEntryMissing",
    "ResolutionError",
]
