"""Click event schema produced by the enrichment pipeline."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClickEvent(BaseModel):
    """A single enriched redirect event, ready for the analytics store.

    Field names match the ``analytics.click_events`` columns one to one.
    Text descriptors default to the empty string when unknown.
    """

    id: UUID = Field(default_factory=uuid4)
    link_id: UUID
    short_code: str
    original_url: str
    domain_name: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)

    # Browser / engine / OS / device / CPU
    browser_name: str = ""
    browser_version: str = ""
    browser_major: str = ""
    browser_type: str = ""
    engine_name: str = ""
    engine_version: str = ""
    os_name: str = ""
    os_version: str = ""
    device_type: str = ""
    device_vendor: str = ""
    device_model: str = ""
    cpu_architecture: str = ""
    is_bot: bool = False

    # Geolocation
    ip: str = ""
    country: str = ""
    country_code: str = ""
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
    geo_source: str = ""

    # UTM parameters
    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    utm_term: str = ""
    utm_content: str = ""
    utm_id: str = ""

    query_params: dict[str, str] = Field(default_factory=dict)

    referrer: str = ""
    user_agent: str = ""
