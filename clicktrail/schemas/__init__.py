"""Pydantic schemas."""

from clicktrail.schemas.analytics import (
    ClickEventItem,
    CountResponse,
    DataResponse,
    EventsResponse,
    Granularity,
    GroupBy,
    RebucketedResponse,
    TimeBucket,
)
from clicktrail.schemas.click import ClickEvent
from clicktrail.schemas.link import (
    CachedLink,
    LinkCreate,
    LinkDelete,
    LinkListResponse,
    LinkResponse,
    LinkUpdate,
)

__all__ = [
    "CachedLink",
    "ClickEvent",
    "ClickEventItem",
    "CountResponse",
    "DataResponse",
    "EventsResponse",
    "Granularity",
    "GroupBy",
    "LinkCreate",
    "LinkDelete",
    "LinkListResponse",
    "LinkResponse",
    "LinkUpdate",
    "RebucketedResponse",
    "TimeBucket",
]
