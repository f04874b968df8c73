"""Per-run package cache.

Caches resolved versions and installed packages for the duration of one
bundling run, and de-duplicates concurrent requests for the same key: the
first requester performs the work, later requesters await its result.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable, Tuple

from loguru import logger

from snackpack.models import ResolvedPackage


class PackageCache:
    """Cache for version resolutions and installs, keyed by name and version.

    Usage:
        cache = PackageCache()
        package = await cache.get_or_install(
            "lib",
            "1.2.3",
            lambda: install_package("lib", "1.2.3"),
        )
    """

    def __init__(self):
        """Initialize empty cache."""
        self._versions: Dict[Tuple[str, str], str] = {}
        self._packages: Dict[Tuple[str, str], ResolvedPackage] = {}
        self._in_flight: Dict[Hashable, asyncio.Future] = {}
        self._hits = 0
        self._misses = 0

    async def get_or_resolve(self, name: str, constraint: str, resolver: Callable[[], Awaitable[str]]) -> str:
        """Get the cached exact version for (name, constraint) or resolve it once."""
        return await self._get_or_execute(self._versions, (name, constraint), resolver)

    async def get_or_install(
        self, name: str, version: str, installer: Callable[[], Awaitable[ResolvedPackage]]
    ) -> ResolvedPackage:
        """Get the cached package for (name, version) or install it once."""
        return await self._get_or_execute(self._packages, (name, version), installer)

    async def _get_or_execute(
        self, store: Dict[Any, Any], key: Tuple[str, str], executor: Callable[[], Awaitable[Any]]
    ) -> Any:
        if key in store:
            self._hits += 1
            return store[key]

        flight_key = (id(store), key)
        pending = self._in_flight.get(flight_key)
        if pending is not None:
            self._hits += 1
            logger.debug(f"Waiting for in-flight request {key[0]}@{key[1]}")
            return await pending

        self._misses += 1
        future = asyncio.get_running_loop().create_future()
        self._in_flight[flight_key] = future
        try:
            result = await executor()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited failure is not reported by asyncio
            future.exception()
            raise
        else:
            store[key] = result
            future.set_result(result)
            return result
        finally:
            del self._in_flight[flight_key]

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0

        return {
            "hits": self._hits,
            "misses": self._misses,
            "total_requests": total,
            "hit_rate_percent": hit_rate,
            "packages": len(self._packages),
        }

    def __len__(self) -> int:
        """Return number of installed packages."""
        return len(self._packages)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._packages
