"""Short code resolution: cache first, relational store on miss."""

from datetime import datetime, timezone
from typing import Protocol

import structlog

from clicktrail.core.exceptions import NotFoundError
from clicktrail.models.link import Domain, DomainStatus, Link, LinkStatus
from clicktrail.schemas.link import CachedLink
from clicktrail.services.link_cache import LinkCache

logger = structlog.get_logger()


class LinkSource(Protocol):
    async def find_by_short_code_with_domain(
        self,
        short_code: str,
    ) -> list[tuple[Link, Domain | None]]: ...


def link_not_found(reason: str, short_code: str, host: str) -> NotFoundError:
    """Log the internal reason and build the uniform error callers see."""
    logger.info("Link not resolvable", reason=reason, short_code=short_code, host=host)
    return NotFoundError("Link not found", reason=reason)


def _pick_row(
    rows: list[tuple[Link, Domain | None]],
    request_host: str,
) -> tuple[Link, Domain | None]:
    """Choose among links sharing a short code across domains.

    Prefers the link on the requested host, then a default-domain link.
    """
    for link, domain in rows:
        if domain is not None and domain.domain_name == request_host:
            return link, domain
    for link, domain in rows:
        if link.domain_id is None:
            return link, domain
    return rows[0]


class LinkResolver:
    """Resolve ``(short_code, request_host)`` to a servable link.

    Flow:
    1. Look up (request_host, short_code) in the link cache
    2. On miss, one joined query for link + domain
    3. Check the custom domain exists and is active
    4. Cache the projection (failures are logged and ignored)
    5. Validate status, expiry and host

    Concurrent misses for the same key each query the store and write the
    cache; the values are equivalent so the last write wins.
    """

    def __init__(self, cache: LinkCache, links: LinkSource):
        self._cache = cache
        self._links = links

    async def resolve(
        self,
        short_code: str,
        request_host: str,
        now: datetime | None = None,
    ) -> CachedLink:
        now = now or datetime.now(timezone.utc)

        cached = await self._cache.get(request_host, short_code)
        if cached is None:
            cached = await self._load(short_code, request_host, now)
            source = "database"
        else:
            source = "cache"

        self._validate(cached, request_host, now)

        logger.info(
            "Link resolved",
            source=source,
            short_code=short_code,
            host=request_host,
            link_id=str(cached.id),
        )
        return cached

    async def _load(self, short_code: str, request_host: str, now: datetime) -> CachedLink:
        rows = await self._links.find_by_short_code_with_domain(short_code)
        if not rows:
            raise link_not_found("not_found", short_code, request_host)

        link, domain = _pick_row(rows, request_host)

        if link.domain_id is not None:
            if domain is None:
                raise link_not_found("domain_not_found", short_code, request_host)
            if domain.status != DomainStatus.ACTIVE:
                raise link_not_found("domain_not_verified", short_code, request_host)
            domain_name = domain.domain_name
        else:
            domain_name = request_host

        cached = CachedLink.from_link(link, domain_name)

        try:
            await self._cache.set(cached, now=now)
        except Exception as e:
            logger.warning(
                "Failed to cache link",
                short_code=short_code,
                domain_name=domain_name,
                error=str(e),
            )

        return cached

    @staticmethod
    def _validate(link: CachedLink, request_host: str, now: datetime) -> None:
        if link.status != LinkStatus.ACTIVE:
            raise link_not_found("inactive", link.short_code, request_host)

        if link.expires_at is not None and link.expires_at <= now:
            raise link_not_found("expired", link.short_code, request_host)

        if link.domain_id is not None and link.domain_name != request_host:
            raise link_not_found("domain_mismatch", link.short_code, request_host)
