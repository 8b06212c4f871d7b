"""Link lifecycle: creation with unique short codes, updates and deletes.

Every write is committed before the affected link cache entries are removed,
so a concurrent redirect cannot repopulate them from the old row.
"""

import secrets
import string
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError

from clicktrail.core.config import Settings, get_settings
from clicktrail.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from clicktrail.core.security import SessionUser
from clicktrail.models.link import Link
from clicktrail.schemas.link import LinkCreate, LinkUpdate
from clicktrail.services.link_cache import LinkCache
from clicktrail.services.permissions import can_use_domain
from clicktrail.services.repository import LinkRepository

logger = structlog.get_logger()

# Characters for random short code generation (base62)
SHORT_CODE_CHARS = string.ascii_lowercase + string.ascii_uppercase + string.digits


def generate_short_code(length: int = 6) -> str:
    """Generate a random short code using base62 characters."""
    return "".join(secrets.choice(SHORT_CODE_CHARS) for _ in range(length))


class LinkService:
    """Create, update and delete links, keeping the link cache consistent."""

    def __init__(
        self,
        repository: LinkRepository,
        cache: LinkCache,
        settings: Settings | None = None,
    ):
        self._repository = repository
        self._cache = cache
        self._settings = settings or get_settings()

    async def domain_name_for(self, domain_id: UUID | None) -> str:
        """Host a link is served from: its custom domain or the default host."""
        if domain_id is None:
            return self._settings.default_host
        domain = await self._repository.get_domain(domain_id)
        if domain is None:
            return self._settings.default_host
        return domain.domain_name

    async def generate_unique_short_code(self, domain_id: UUID | None) -> str:
        """Generate a short code unused within the domain scope.

        Raises InternalError after ``short_code_max_attempts`` collisions.
        """
        for _ in range(self._settings.short_code_max_attempts):
            code = generate_short_code(self._settings.short_code_length)
            if not await self._repository.short_code_exists(code, domain_id):
                return code
        logger.error(
            "Short code generation exhausted",
            attempts=self._settings.short_code_max_attempts,
        )
        raise InternalError("Failed to generate unique short code")

    async def _check_domain(self, user: SessionUser | None, domain_id: UUID) -> None:
        if user is None:
            raise UnauthorizedError("Authentication required for custom domains")
        domain = await self._repository.get_domain(domain_id)
        if domain is None:
            raise NotFoundError("Domain not found", reason="domain_not_found")
        if not await can_use_domain(user, domain, self._repository):
            raise ForbiddenError("You do not have access to this domain")

    async def create_link(self, user: SessionUser | None, data: LinkCreate) -> Link:
        """Create a link; anonymous callers may only create plain links."""
        if data.organization_id is not None:
            if user is None:
                raise UnauthorizedError("Authentication required for organization links")
            member = await self._repository.get_membership(data.organization_id, user.user_id)
            if member is None and not user.is_admin:
                raise ForbiddenError("You are not a member of this organization")

        if data.domain_id is not None:
            await self._check_domain(user, data.domain_id)

        short_code = await self.generate_unique_short_code(data.domain_id)
        try:
            link = await self._repository.create(
                short_code=short_code,
                original_url=str(data.original_url),
                domain_id=data.domain_id,
                user_id=user.user_id if user else None,
                organization_id=data.organization_id,
                title=data.title,
                description=data.description,
                status=data.status,
                expires_at=data.expires_at,
            )
            await self._repository.commit()
        except IntegrityError as e:
            raise ConflictError(f"Short code '{short_code}' is already taken") from e

        await self._cache.remove(await self.domain_name_for(link.domain_id), link.short_code)

        logger.info(
            "Link created",
            link_id=str(link.id),
            short_code=link.short_code,
            domain_id=str(link.domain_id) if link.domain_id else None,
        )
        return link

    async def update_link(self, user: SessionUser, link: Link, data: LinkUpdate) -> Link:
        """Apply the fields set on ``data``.

        Removes the cache entry under the old (domain, short code) and, when
        either changed, under the new one as well.
        """
        changes: dict[str, Any] = data.model_dump(exclude_unset=True, exclude={"link_id"})
        if "original_url" in changes and changes["original_url"] is not None:
            changes["original_url"] = str(changes["original_url"])
        for required in ("original_url", "short_code", "status"):
            if required in changes and changes[required] is None:
                raise BadRequestError(f"{required} cannot be null")

        new_domain_id = changes.get("domain_id", link.domain_id)
        new_short_code = changes.get("short_code", link.short_code)
        moved = new_domain_id != link.domain_id or new_short_code != link.short_code

        if new_domain_id is not None and new_domain_id != link.domain_id:
            await self._check_domain(user, new_domain_id)
        if moved and await self._repository.short_code_exists(new_short_code, new_domain_id):
            raise ConflictError(f"Short code '{new_short_code}' is already taken")

        old_domain_name = await self.domain_name_for(link.domain_id)
        old_short_code = link.short_code

        try:
            updated = await self._repository.update(link, changes)
            await self._repository.commit()
        except IntegrityError as e:
            raise ConflictError(f"Short code '{new_short_code}' is already taken") from e

        await self._cache.remove(old_domain_name, old_short_code)
        if moved:
            new_domain_name = await self.domain_name_for(updated.domain_id)
            await self._cache.remove(new_domain_name, updated.short_code)

        logger.info(
            "Link updated",
            link_id=str(updated.id),
            fields=sorted(changes),
            moved=moved,
        )
        return updated

    async def delete_link(self, link: Link) -> None:
        """Delete the row and its cache entry under the current domain."""
        domain_name = await self.domain_name_for(link.domain_id)
        short_code = link.short_code  # Save before deletion

        await self._repository.delete(link)
        await self._repository.commit()
        await self._cache.remove(domain_name, short_code)

        logger.info("Link deleted", link_id=str(link.id), short_code=short_code)


def build_short_url(scheme: str, domain_name: str, short_code: str) -> str:
    return f"{scheme}://{domain_name}/s/{short_code}"


def build_qr_url(scheme: str, domain_name: str, short_code: str) -> str:
    return f"{scheme}://{domain_name}/qr/{short_code}"
