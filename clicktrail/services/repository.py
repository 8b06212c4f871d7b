"""Relational store access for links, domains and memberships."""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.models.link import Domain, Link
from clicktrail.models.member import Member


class LinkRepository:
    """Thin async adapter over the ``api`` schema.

    One instance per unit of work. Writes only flush until ``commit``.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_by_short_code_with_domain(
        self,
        short_code: str,
    ) -> list[tuple[Link, Domain | None]]:
        """All links with this short code, each with its (left-joined) domain.

        Issues exactly one query.
        """
        query = (
            select(Link, Domain)
            .outerjoin(Domain, Link.domain_id == Domain.id)
            .where(Link.short_code == short_code)
        )
        result = await self._session.execute(query)
        return [(row.Link, row.Domain) for row in result.all()]

    async def get(self, link_id: UUID) -> Link | None:
        result = await self._session.execute(select(Link).where(Link.id == link_id))
        return result.scalar_one_or_none()

    async def get_domain(self, domain_id: UUID) -> Domain | None:
        result = await self._session.execute(select(Domain).where(Domain.id == domain_id))
        return result.scalar_one_or_none()

    async def get_membership(self, organization_id: UUID, user_id: UUID) -> Member | None:
        result = await self._session.execute(
            select(Member).where(
                Member.organization_id == organization_id,
                Member.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def organization_ids_for(self, user_id: UUID) -> list[UUID]:
        result = await self._session.execute(
            select(Member.organization_id).where(Member.user_id == user_id)
        )
        return list(result.scalars().all())

    async def short_code_exists(self, short_code: str, domain_id: UUID | None) -> bool:
        """Check the composite (domain_id, short_code) uniqueness scope."""
        if domain_id is None:
            scope = Link.domain_id.is_(None)
        else:
            scope = Link.domain_id == domain_id
        result = await self._session.execute(
            select(Link.id).where(Link.short_code == short_code, scope).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def find(
        self,
        where: Sequence[ColumnElement[bool]] = (),
        limit: int = 20,
        offset: int = 0,
    ) -> list[Link]:
        query = (
            select(Link)
            .where(*where)
            .order_by(Link.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def count(self, where: Sequence[ColumnElement[bool]] = ()) -> int:
        result = await self._session.execute(select(func.count(Link.id)).where(*where))
        return result.scalar() or 0

    async def create(self, **fields: Any) -> Link:
        link = Link(**fields)
        self._session.add(link)
        await self._session.flush()
        await self._session.refresh(link)
        return link

    async def update(self, link: Link, changes: dict[str, Any]) -> Link:
        for name, value in changes.items():
            setattr(link, name, value)
        await self._session.flush()
        await self._session.refresh(link)
        return link

    async def delete(self, link: Link) -> None:
        await self._session.execute(delete(Link).where(Link.id == link.id))
        await self._session.flush()

    async def commit(self) -> None:
        """Make pending writes visible to other sessions."""
        await self._session.commit()
