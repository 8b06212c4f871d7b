"""Access rules for links."""

from uuid import UUID

from sqlalchemy import ColumnElement, or_, true

from clicktrail.core.exceptions import ForbiddenError, NotFoundError
from clicktrail.core.security import SessionUser
from clicktrail.models.link import Domain, Link
from clicktrail.services.repository import LinkRepository


async def can_access_link(
    user: SessionUser,
    link: Link,
    repository: LinkRepository,
) -> bool:
    """Global admins, the link owner, and organization owners/admins."""
    if user.is_admin:
        return True

    if link.user_id is not None and link.user_id == user.user_id:
        return True

    if link.organization_id is not None:
        member = await repository.get_membership(link.organization_id, user.user_id)
        return member is not None and member.can_manage_links

    return False


async def can_use_domain(
    user: SessionUser,
    domain: Domain,
    repository: LinkRepository,
) -> bool:
    """Whether the caller may attach links to a custom domain."""
    if user.is_admin:
        return True
    if domain.user_id is not None and domain.user_id == user.user_id:
        return True
    if domain.organization_id is not None:
        member = await repository.get_membership(domain.organization_id, user.user_id)
        return member is not None
    return False


def build_link_scope(
    user: SessionUser,
    organization_ids: list[UUID],
) -> ColumnElement[bool]:
    """Where-clause restricting a link listing to what the caller may see."""
    if user.is_admin:
        return true()
    conditions = [Link.user_id == user.user_id]
    if organization_ids:
        conditions.append(Link.organization_id.in_(organization_ids))
    return or_(*conditions)


async def require_link_access(
    user: SessionUser,
    link_id: UUID,
    repository: LinkRepository,
) -> Link:
    """Load a link the caller may manage.

    Raises NotFoundError if it does not exist, ForbiddenError if the caller
    lacks rights.
    """
    link = await repository.get(link_id)
    if link is None:
        raise NotFoundError("Link not found")
    if not await can_access_link(user, link, repository):
        raise ForbiddenError("You do not have access to this link")
    return link
