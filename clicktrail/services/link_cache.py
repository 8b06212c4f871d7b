"""Link cache keyed by (domain name, short code)."""

import math
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from clicktrail.core.observability import record_cache_lookup
from clicktrail.schemas.link import CachedLink

logger = structlog.get_logger()


class CacheStore(Protocol):
    """Key-value store with per-key TTL."""

    async def get(self, key: str) -> dict[str, Any] | None: ...

    async def set(self, key: str, value: dict[str, Any], ttl: int) -> None: ...

    async def delete(self, key: str) -> None: ...


def compute_ttl(
    expires_at: datetime | None,
    default_ttl: int,
    now: datetime | None = None,
) -> int:
    """TTL for a cache entry: ``min(default_ttl, seconds until expiry)``.

    May be zero or negative for an already expired link; such entries must not
    be written.
    """
    if expires_at is None:
        return default_ttl
    now = now or datetime.now(timezone.utc)
    remaining = math.floor((expires_at - now).total_seconds())
    return min(default_ttl, remaining)


class LinkCache:
    """Cache-aside storage of ``CachedLink`` projections.

    Usage:
        cache = LinkCache(RedisCacheStore(client), prefix="link:", default_ttl=3600)
        await cache.set(cached_link)
        hit = await cache.get("go.example.com", "abc123")
    """

    def __init__(self, store: CacheStore, prefix: str = "link:", default_ttl: int = 3600):
        self._store = store
        self._prefix = prefix
        self._default_ttl = default_ttl

    def key(self, domain_name: str, short_code: str) -> str:
        return f"{self._prefix}{domain_name}:{short_code}"

    async def get(self, domain_name: str, short_code: str) -> CachedLink | None:
        """Return the cached projection, or None on miss.

        A failing store or an unreadable entry counts as a miss.
        """
        try:
            data = await self._store.get(self.key(domain_name, short_code))
        except Exception as e:
            logger.warning(
                "Link cache read failed",
                domain_name=domain_name,
                short_code=short_code,
                error=str(e),
            )
            record_cache_lookup("error")
            return None

        if data is None:
            logger.debug("Cache miss", domain_name=domain_name, short_code=short_code)
            record_cache_lookup("miss")
            return None

        try:
            link = CachedLink.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Unreadable link cache entry",
                domain_name=domain_name,
                short_code=short_code,
                error=str(e),
            )
            record_cache_lookup("error")
            return None

        logger.debug("Cache hit", domain_name=domain_name, short_code=short_code)
        record_cache_lookup("hit")
        return link

    async def set(self, link: CachedLink, now: datetime | None = None) -> int | None:
        """Store a projection under (link.domain_name, link.short_code).

        Returns the TTL used, or None when the link is already past its expiry
        and nothing was written. Store errors propagate.
        """
        ttl = compute_ttl(link.expires_at, self._default_ttl, now)
        if ttl <= 0:
            logger.debug("Link not cached, already expired", short_code=link.short_code)
            return None

        await self._store.set(
            self.key(link.domain_name, link.short_code),
            link.model_dump(mode="json"),
            ttl,
        )
        logger.debug("Link cached", domain_name=link.domain_name, short_code=link.short_code, ttl=ttl)
        return ttl

    async def remove(self, domain_name: str, short_code: str) -> None:
        """Invalidate a single entry. Store errors are logged, not raised."""
        try:
            await self._store.delete(self.key(domain_name, short_code))
            logger.debug("Cache invalidated", domain_name=domain_name, short_code=short_code)
        except Exception as e:
            logger.warning(
                "Link cache delete failed",
                domain_name=domain_name,
                short_code=short_code,
                error=str(e),
            )
