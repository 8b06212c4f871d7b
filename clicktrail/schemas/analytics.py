"""Pydantic schemas for analytics API responses."""

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from clicktrail.schemas.link import ApiModel


class GroupBy(str, enum.Enum):
    """Groupings accepted by ``GET /link/analytics``."""

    COUNT = "count"
    TIMESERIES = "timeseries"
    COUNTRIES = "countries"
    CITIES = "cities"
    DEVICES = "devices"
    BROWSERS = "browsers"
    OS = "os"
    UTM_SOURCES = "utm_sources"
    UTM_MEDIUMS = "utm_mediums"
    UTM_CAMPAIGNS = "utm_campaigns"
    UTM_TERMS = "utm_terms"
    UTM_CONTENTS = "utm_contents"
    UTM_IDS = "utm_ids"
    REFERERS = "referers"


class Granularity(str, enum.Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class CountResponse(ApiModel):
    total_clicks: int
    unique_visitors: int = Field(
        description="Approximation: floor(totalClicks * 0.7), not a distinct count",
    )


class DataResponse(ApiModel):
    """Rows of a timeseries or dimension breakdown."""

    data: list[dict[str, Any]]


class TimeBucket(ApiModel):
    """A re-aggregated timeseries point."""

    timestamp: datetime = Field(description="Bucket start")
    bucket: str = Field(description="Bucket key, e.g. '2024-05' for a month")
    clicks: int


class RebucketedResponse(ApiModel):
    granularity: Granularity
    data: list[TimeBucket]


class ClickEventItem(ApiModel):
    """Raw click row as exposed by the events listing (no IP, UA or referrer)."""

    id: UUID
    timestamp: datetime
    short_code: str
    original_url: str
    browser_name: str
    browser_type: str
    os_name: str
    device_type: str
    device_vendor: str
    device_model: str
    is_bot: bool
    country: str
    country_code: str
    region: str
    region_code: str
    city: str
    timezone: str
    isp: str
    org: str
    asn: str
    accuracy_radius: str
    is_proxy: bool
    utm_source: str
    utm_medium: str
    utm_campaign: str
    utm_term: str
    utm_content: str
    utm_id: str


class EventsResponse(ApiModel):
    events: list[ClickEventItem]
    total: int
    limit: int
    offset: int
