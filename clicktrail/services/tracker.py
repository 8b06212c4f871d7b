"""Click tracking: enrich a redirect request and append it to the analytics store."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import structlog
from starlette.requests import Request

from clicktrail.core.observability import record_click_failed, record_click_tracked
from clicktrail.schemas.click import ClickEvent
from clicktrail.schemas.link import CachedLink
from clicktrail.services.enrichment import (
    extract_client_ip,
    extract_query_params,
    parse_user_agent,
)
from clicktrail.services.geoip import GeoLocation, GeoLookup

logger = structlog.get_logger()


class ClickStore(Protocol):
    async def insert(self, event: ClickEvent) -> None: ...


@dataclass(frozen=True)
class RequestSnapshot:
    """The parts of a request tracking needs, copied before the response goes out."""

    headers: dict[str, str]
    client_host: str | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_request(cls, request: Request) -> "RequestSnapshot":
        return cls(
            headers={key.lower(): value for key, value in request.headers.items()},
            client_host=request.client.host if request.client else None,
        )

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def referrer(self) -> str:
        return self.headers.get("referer", "")


class ClickTracker:
    """Builds a ClickEvent for a resolved link and stores it.

    ``track`` never raises: any failure is logged and the event is dropped.
    It is meant to run after the redirect response has been sent.

    Usage:
        tracker = ClickTracker(store=get_analytics_store(), geoip=get_geoip_service())
        background_tasks.add_task(tracker.track, RequestSnapshot.from_request(request), link)
    """

    def __init__(self, store: ClickStore, geoip: GeoLookup):
        self._store = store
        self._geoip = geoip

    async def track(self, request: RequestSnapshot, link: CachedLink) -> None:
        start_time = time.perf_counter()
        try:
            event = await self.build_event(request, link)
            await self._store.insert(event)
        except Exception as e:
            record_click_failed()
            logger.warning(
                "Failed to track click event",
                link_id=str(link.id),
                short_code=link.short_code,
                error=str(e),
            )
            return

        duration = time.perf_counter() - start_time
        record_click_tracked(duration)
        logger.debug(
            "Click event stored",
            link_id=str(link.id),
            event_id=str(event.id),
            duration_ms=round(duration * 1000, 2),
        )

    async def build_event(self, request: RequestSnapshot, link: CachedLink) -> ClickEvent:
        """Run the enrichment pipeline for one request."""
        ip = extract_client_ip(request.headers, request.client_host)
        user_agent = request.user_agent
        geo = await self._lookup_geo(ip)

        return ClickEvent(
            link_id=link.id,
            short_code=link.short_code,
            original_url=link.original_url,
            domain_name=link.domain_name,
            timestamp=request.received_at,
            ip=ip,
            referrer=request.referrer,
            user_agent=user_agent,
            **parse_user_agent(user_agent).as_fields(),
            **geo.as_fields(),
            **extract_query_params(link.original_url).as_fields(),
        )

    async def _lookup_geo(self, ip: str) -> GeoLocation:
        try:
            return await self._geoip.lookup(ip)
        except Exception as e:
            logger.debug("Geolocation lookup failed", ip=ip, error=str(e))
            return GeoLocation()
