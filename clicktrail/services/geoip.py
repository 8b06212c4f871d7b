"""GeoIP service for IP to location lookup."""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Protocol

import geoip2.database
import geoip2.errors
import httpx
import structlog

from clicktrail.core.config import get_settings
from clicktrail.services.enrichment import is_public_ip

settings = get_settings()
logger = structlog.get_logger()

# Fields requested from the HTTP fallback
IP_API_FIELDS = (
    "status,country,countryCode,region,regionName,city,lat,lon,"
    "timezone,isp,org,as,proxy"
)


@dataclass
class GeoLocation:
    """Geographic location data from IP lookup. Unknown values stay empty."""

    country: str = ""
    country_code: str = ""  # ISO 3166-1 alpha-2 country code
    region: str = ""
    region_code: str = ""
    city: str = ""
    latitude: float | None = None
    longitude: float | None = None
    timezone: str = ""
    isp: str = ""
    org: str = ""
    asn: str = ""
    accuracy_radius: str = ""
    is_proxy: bool = False
    source: str = ""

    def as_fields(self) -> dict:
        fields = asdict(self)
        fields["geo_source"] = fields.pop("source")
        return fields


class GeoLookup(Protocol):
    async def lookup(self, ip_address: str | None) -> GeoLocation: ...


class GeoIPService:
    """Service for looking up geographic location from IP addresses.

    Supports two backends:
    1. GeoIP2 database (MaxMind) - for production use
    2. IP-API.com - free API fallback for development

    Usage:
        service = GeoIPService()
        location = await service.lookup("8.8.8.8")
        print(location.country_code, location.city)
    """

    def __init__(
        self,
        geoip_database_path: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the GeoIP service.

        Args:
            geoip_database_path: Path to GeoIP2 City database file.
                If not provided, falls back to IP-API.com.
            api_url: Base URL of the HTTP fallback.
            timeout: Seconds to wait for the HTTP fallback.
        """
        self._geoip_reader: geoip2.database.Reader | None = None
        self._database_path = geoip_database_path or settings.geoip_database_path
        self._api_url = api_url or settings.geoip_api_url
        self._timeout = timeout if timeout is not None else settings.geoip_timeout
        self._client: httpx.AsyncClient | None = None

        if self._database_path:
            self._init_geoip2()

    def _init_geoip2(self) -> None:
        """Initialize GeoIP2 database reader."""
        path = Path(self._database_path)
        if not path.exists():
            logger.warning("GeoIP2 database not found", path=str(path))
            return
        try:
            self._geoip_reader = geoip2.database.Reader(str(path))
            logger.info("GeoIP2 database loaded", path=str(path))
        except (OSError, ValueError) as e:
            logger.error("Failed to load GeoIP2 database", error=str(e))

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        """Look up geographic location for an IP address.

        Never raises: failures and private addresses give an empty GeoLocation.
        """
        if not ip_address or not is_public_ip(ip_address):
            return GeoLocation()

        if self._geoip_reader:
            return self._lookup_geoip2(ip_address)

        return await self._lookup_ip_api(ip_address)

    def _lookup_geoip2(self, ip_address: str) -> GeoLocation:
        """Look up location using GeoIP2 database."""
        try:
            response = self._geoip_reader.city(ip_address)
        except (geoip2.errors.GeoIP2Error, ValueError) as e:
            logger.debug("GeoIP2 lookup failed", ip=ip_address, error=str(e))
            return GeoLocation()

        subdivision = response.subdivisions.most_specific
        return GeoLocation(
            country=response.country.name or "",
            country_code=response.country.iso_code or "",
            region=subdivision.name or "",
            region_code=subdivision.iso_code or "",
            city=response.city.name or "",
            latitude=response.location.latitude,
            longitude=response.location.longitude,
            timezone=response.location.time_zone or "",
            accuracy_radius=(
                str(response.location.accuracy_radius)
                if response.location.accuracy_radius is not None
                else ""
            ),
            is_proxy=bool(response.traits.is_anonymous),
            source="geoip2",
        )

    async def _lookup_ip_api(self, ip_address: str) -> GeoLocation:
        """Look up location using IP-API.com (free tier).

        Note: IP-API has rate limits (45 requests/minute for free tier).
        Use GeoIP2 database for production.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        try:
            response = await self._client.get(
                f"{self._api_url}/{ip_address}",
                params={"fields": IP_API_FIELDS},
            )
            if response.status_code != 200:
                return GeoLocation()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("IP-API lookup failed", ip=ip_address, error=str(e))
            return GeoLocation()

        if data.get("status") != "success":
            return GeoLocation()

        # "as" looks like "AS15169 Google LLC"
        asn = (data.get("as") or "").split(" ", 1)[0]
        return GeoLocation(
            country=data.get("country") or "",
            country_code=data.get("countryCode") or "",
            region=data.get("regionName") or "",
            region_code=data.get("region") or "",
            city=data.get("city") or "",
            latitude=data.get("lat"),
            longitude=data.get("lon"),
            timezone=data.get("timezone") or "",
            isp=data.get("isp") or "",
            org=data.get("org") or "",
            asn=asn,
            is_proxy=bool(data.get("proxy")),
            source="ip-api",
        )

    async def close(self) -> None:
        """Close the GeoIP2 database reader and HTTP client."""
        if self._geoip_reader:
            self._geoip_reader.close()
            self._geoip_reader = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Global service instance
_geoip_service: GeoIPService | None = None


def get_geoip_service() -> GeoIPService:
    """Get the global GeoIP service instance."""
    global _geoip_service
    if _geoip_service is None:
        _geoip_service = GeoIPService()
    return _geoip_service


async def close_geoip_service() -> None:
    """Close the global GeoIP service."""
    global _geoip_service
    if _geoip_service:
        await _geoip_service.close()
        _geoip_service = None
