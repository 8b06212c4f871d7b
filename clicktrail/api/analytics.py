"""Analytics API endpoints."""

from datetime import datetime, timezone
from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Query, Request

from clicktrail.aggregators.granularity import auto_rebucket
from clicktrail.core.config import get_settings
from clicktrail.core.deps import AggregatorDep, CurrentUser, LinkRepositoryDep
from clicktrail.core.exceptions import BadRequestError
from clicktrail.core.rate_limit import RATE_LIMIT_API, limiter
from clicktrail.schemas.analytics import (
    ClickEventItem,
    CountResponse,
    DataResponse,
    EventsResponse,
    Granularity,
    GroupBy,
    RebucketedResponse,
)
from clicktrail.services.permissions import require_link_access

settings = get_settings()
logger = structlog.get_logger()

router = APIRouter(prefix="/link", tags=["analytics"])

AUTO_GRANULARITY = "auto"


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive query datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_link_id(value: str | None) -> UUID:
    if not value:
        raise BadRequestError("linkId is required")
    try:
        return UUID(value)
    except ValueError:
        raise BadRequestError("Invalid linkId parameter") from None


def parse_group_by(value: str) -> GroupBy:
    try:
        return GroupBy(value)
    except ValueError:
        raise BadRequestError("Invalid groupBy parameter") from None


def parse_granularity(value: str | None) -> Granularity | None:
    if value is None or value == AUTO_GRANULARITY:
        return None
    try:
        return Granularity(value)
    except ValueError:
        raise BadRequestError("Invalid granularity parameter") from None


@router.get("/analytics")
@limiter.limit(RATE_LIMIT_API)
async def get_link_analytics(
    request: Request,
    user: CurrentUser,
    repository: LinkRepositoryDep,
    aggregator: AggregatorDep,
    link_id: Annotated[str | None, Query(alias="linkId")] = None,
    group_by: Annotated[str, Query(alias="groupBy")] = GroupBy.COUNT.value,
    start: datetime | None = None,
    end: datetime | None = None,
    granularity: str | None = None,
) -> dict[str, Any]:
    """Aggregated clicks for one link.

    ``count`` returns ``{totalClicks, uniqueVisitors}``; ``uniqueVisitors`` is an
    approximation, not a distinct count. Other groupings return ``{data}``.
    A ``granularity`` on ``timeseries`` re-aggregates the hourly buckets.
    """
    link_uuid = parse_link_id(link_id)
    grouping = parse_group_by(group_by)
    chosen_granularity = parse_granularity(granularity)
    start, end = as_utc(start), as_utc(end)
    await require_link_access(user, link_uuid, repository)

    result = await aggregator.query(link_uuid, grouping, start, end)

    if grouping == GroupBy.COUNT:
        response: CountResponse | DataResponse | RebucketedResponse = CountResponse(**result)
    elif grouping == GroupBy.TIMESERIES and granularity is not None:
        chosen, buckets = auto_rebucket(
            result["data"],
            start=start,
            end=end,
            granularity=chosen_granularity,
        )
        response = RebucketedResponse(granularity=chosen, data=buckets)
    else:
        response = DataResponse(data=result["data"])

    return response.model_dump(mode="json", by_alias=True)


@router.get("/events", response_model=EventsResponse)
@limiter.limit(RATE_LIMIT_API)
async def list_link_events(
    request: Request,
    user: CurrentUser,
    repository: LinkRepositoryDep,
    aggregator: AggregatorDep,
    link_id: Annotated[str | None, Query(alias="linkId")] = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: Annotated[int, Query(ge=1, le=settings.events_max_limit)] = settings.events_default_limit,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> EventsResponse:
    """Raw click events for one link, newest first.

    The client IP, user agent and referrer are never included.
    """
    link_uuid = parse_link_id(link_id)
    start, end = as_utc(start), as_utc(end)
    await require_link_access(user, link_uuid, repository)

    rows, total = await aggregator.events(link_uuid, start, end, limit=limit, offset=offset)

    logger.debug("Events listed", link_id=str(link_uuid), returned=len(rows), total=total)
    return EventsResponse(
        events=[ClickEventItem.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
    )
