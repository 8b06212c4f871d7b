"""Analytics aggregation over the click event store."""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

import structlog

from clicktrail.core.exceptions import BadRequestError
from clicktrail.core.observability import record_analytics_query
from clicktrail.schemas.analytics import GroupBy
from clicktrail.services.analytics_store import BUCKET_LABEL, ClickQuery

logger = structlog.get_logger()

# Breakdown groupings: group_by -> (column, response key)
DIMENSIONS: dict[GroupBy, tuple[str, str]] = {
    GroupBy.COUNTRIES: ("country", "country"),
    GroupBy.CITIES: ("city", "city"),
    GroupBy.DEVICES: ("device_type", "deviceType"),
    GroupBy.BROWSERS: ("browser_name", "browserName"),
    GroupBy.OS: ("os_name", "osName"),
    GroupBy.UTM_SOURCES: ("utm_source", "utmSource"),
    GroupBy.UTM_MEDIUMS: ("utm_medium", "utmMedium"),
    GroupBy.UTM_CAMPAIGNS: ("utm_campaign", "utmCampaign"),
    GroupBy.UTM_TERMS: ("utm_term", "utmTerm"),
    GroupBy.UTM_CONTENTS: ("utm_content", "utmContent"),
    GroupBy.UTM_IDS: ("utm_id", "utmId"),
    GroupBy.REFERERS: ("referrer", "referrer"),
}

# Columns safe to expose in the raw events listing
EVENT_COLUMNS = (
    "id",
    "timestamp",
    "short_code",
    "original_url",
    "browser_name",
    "browser_type",
    "os_name",
    "device_type",
    "device_vendor",
    "device_model",
    "is_bot",
    "country",
    "country_code",
    "region",
    "region_code",
    "city",
    "timezone",
    "isp",
    "org",
    "asn",
    "accuracy_radius",
    "is_proxy",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "utm_id",
)


def estimate_unique_visitors(total_clicks: int) -> int:
    """Approximate unique visitors as ``floor(total_clicks * 0.7)``.

    A heuristic, not a distinct count; dashboards are calibrated to it.
    Integer arithmetic keeps the floor exact.
    """
    return total_clicks * 7 // 10


class QueryExecutor(Protocol):
    async def execute(self, query: ClickQuery) -> list[dict[str, Any]]: ...


class AnalyticsAggregator:
    """Builds grouped queries for one link and shapes the results.

    Usage:
        aggregator = AnalyticsAggregator(get_analytics_store())
        result = await aggregator.query(link_id, GroupBy.COUNTRIES, start, end)
    """

    def __init__(self, store: QueryExecutor, max_rows: int = 50):
        self._store = store
        self._max_rows = max_rows

    @staticmethod
    def base_query(
        link_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ClickQuery:
        if start is not None and end is not None and start > end:
            raise BadRequestError("start must be before or equal to end")
        return ClickQuery().where_eq("link_id", link_id).where_range("timestamp", start, end)

    async def count(
        self,
        link_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        rows = await self._store.execute(self.base_query(link_id, start, end).count("total_clicks"))
        return int(rows[0]["total_clicks"]) if rows else 0

    async def timeseries(
        self,
        link_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Hourly buckets, ascending by bucket start."""
        query = (
            self.base_query(link_id, start, end)
            .count("clicks")
            .group_by_hour()
            .order_by(BUCKET_LABEL)
        )
        rows = await self._store.execute(query)
        return [{"timestamp": row[BUCKET_LABEL], "clicks": int(row["clicks"])} for row in rows]

    async def breakdown(
        self,
        link_id: UUID,
        group_by: GroupBy,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Clicks per dimension value, most clicked first."""
        try:
            column, key = DIMENSIONS[group_by]
        except KeyError:
            raise BadRequestError("Invalid groupBy parameter") from None

        query = (
            self.base_query(link_id, start, end)
            .count("clicks")
            .group_by(column)
            .order_by("clicks", descending=True)
            .limit(self._max_rows)
        )
        rows = await self._store.execute(query)
        return [{key: row[column], "clicks": int(row["clicks"])} for row in rows]

    async def query(
        self,
        link_id: UUID,
        group_by: GroupBy,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        """Dispatch on ``group_by``.

        Returns ``{"total_clicks", "unique_visitors"}`` for counts and
        ``{"data": [...]}`` otherwise.
        """
        record_analytics_query(group_by.value)
        logger.debug(
            "Analytics query",
            link_id=str(link_id),
            group_by=group_by.value,
            start=start.isoformat() if start else None,
            end=end.isoformat() if end else None,
        )

        if group_by == GroupBy.COUNT:
            total = await self.count(link_id, start, end)
            return {
                "total_clicks": total,
                "unique_visitors": estimate_unique_visitors(total),
            }
        if group_by == GroupBy.TIMESERIES:
            return {"data": await self.timeseries(link_id, start, end)}
        return {"data": await self.breakdown(link_id, group_by, start, end)}

    async def events(
        self,
        link_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """Raw click rows, newest first, without IP/user-agent/referrer."""
        base = self.base_query(link_id, start, end)
        rows = await self._store.execute(
            base.select(EVENT_COLUMNS)
            .order_by("timestamp", descending=True)
            .limit(limit)
            .offset(offset)
        )
        total_rows = await self._store.execute(base.count("total"))
        total = int(total_rows[0]["total"]) if total_rows else 0
        return rows, total
