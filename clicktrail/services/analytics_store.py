"""Append-only analytics store over ``analytics.click_events``."""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, insert, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clicktrail.core.database import async_session_factory
from clicktrail.models.click import ClickEventRecord
from clicktrail.schemas.click import ClickEvent

# Label of the hour bucket column produced by ``group_by_hour``
BUCKET_LABEL = "timestamp"


def _column(name: str):
    try:
        return ClickEventRecord.__table__.c[name]
    except KeyError:
        raise ValueError(f"Unknown click event column: {name}") from None


@dataclass(frozen=True)
class ClickQuery:
    """Immutable query description; each method returns a new query.

    Usage:
        query = (
            ClickQuery()
            .where_eq("link_id", link_id)
            .where_range("timestamp", start, end)
            .count("clicks")
            .group_by("country")
            .order_by("clicks", descending=True)
            .limit(50)
        )
        rows = await store.execute(query)
    """

    filters: tuple[tuple[str, str, Any], ...] = ()
    columns: tuple[str, ...] = ()
    count_label: str | None = None
    group_column: str | None = None
    group_hour: bool = False
    ordering: tuple[str, bool] | None = None
    limit_value: int | None = None
    offset_value: int | None = None

    def where_eq(self, column: str, value: Any) -> "ClickQuery":
        return replace(self, filters=self.filters + ((column, "eq", value),))

    def where_range(
        self,
        column: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> "ClickQuery":
        """Inclusive range; either bound may be omitted."""
        filters = self.filters
        if start is not None:
            filters += ((column, "gte", start),)
        if end is not None:
            filters += ((column, "lte", end),)
        return replace(self, filters=filters)

    def select(self, columns: Sequence[str]) -> "ClickQuery":
        return replace(self, columns=tuple(columns))

    def count(self, label: str = "count") -> "ClickQuery":
        return replace(self, count_label=label)

    def group_by(self, column: str) -> "ClickQuery":
        return replace(self, group_column=column)

    def group_by_hour(self) -> "ClickQuery":
        return replace(self, group_hour=True)

    def order_by(self, key: str, descending: bool = False) -> "ClickQuery":
        return replace(self, ordering=(key, descending))

    def limit(self, value: int) -> "ClickQuery":
        return replace(self, limit_value=value)

    def offset(self, value: int) -> "ClickQuery":
        return replace(self, offset_value=value)

    def statement(self) -> Select:
        """Compile to a SQLAlchemy ``Select``."""
        selected = []
        group_exprs = []

        if self.group_hour:
            # Inline literal so SELECT and GROUP BY render the same expression
            bucket = func.date_trunc(literal_column("'hour'"), _column("timestamp"))
            selected.append(bucket.label(BUCKET_LABEL))
            group_exprs.append(bucket)
        if self.group_column is not None:
            column = _column(self.group_column)
            selected.append(column)
            group_exprs.append(column)
        for name in self.columns:
            selected.append(_column(name))
        if self.count_label is not None:
            selected.append(func.count(_column("id")).label(self.count_label))
        if not selected:
            selected.append(ClickEventRecord.__table__)

        stmt = select(*selected)
        for name, op, value in self.filters:
            column = _column(name)
            if op == "eq":
                stmt = stmt.where(column == value)
            elif op == "gte":
                stmt = stmt.where(column >= value)
            elif op == "lte":
                stmt = stmt.where(column <= value)
        if group_exprs:
            stmt = stmt.group_by(*group_exprs)

        if self.ordering is not None:
            key, descending = self.ordering
            if key == self.count_label:
                order_expr = func.count(_column("id"))
            elif key == BUCKET_LABEL and self.group_hour:
                order_expr = group_exprs[0]
            else:
                order_expr = _column(key)
            stmt = stmt.order_by(order_expr.desc() if descending else order_expr.asc())

        if self.limit_value is not None:
            stmt = stmt.limit(self.limit_value)
        if self.offset_value is not None:
            stmt = stmt.offset(self.offset_value)
        return stmt


class AnalyticsStore:
    """Single-row inserts and query execution for click events.

    Each call opens its own session, so concurrent tracking tasks share
    nothing but the engine's connection pool.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session_factory):
        self._session_factory = session_factory

    async def insert(self, event: ClickEvent) -> None:
        async with self._session_factory() as session:
            try:
                await session.execute(insert(ClickEventRecord).values(**event.model_dump()))
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def execute(self, query: ClickQuery) -> list[dict[str, Any]]:
        async with self._session_factory() as session:
            result = await session.execute(query.statement())
            return [dict(row) for row in result.mappings().all()]


# Global store instance
_analytics_store: AnalyticsStore | None = None


def get_analytics_store() -> AnalyticsStore:
    """Get the global analytics store instance."""
    global _analytics_store
    if _analytics_store is None:
        _analytics_store = AnalyticsStore()
    return _analytics_store
