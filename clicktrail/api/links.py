"""Link CRUD endpoints."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Query, Request, status

from clicktrail.core.deps import CurrentUser, CurrentUserOptional, LinkRepositoryDep, LinkServiceDep
from clicktrail.core.observability import record_link_operation
from clicktrail.core.rate_limit import RATE_LIMIT_API, RATE_LIMIT_CREATE_LINK, limiter
from clicktrail.models.link import Link
from clicktrail.schemas.link import (
    LinkCreate,
    LinkDelete,
    LinkListResponse,
    LinkResponse,
    LinkUpdate,
)
from clicktrail.services.links import LinkService, build_qr_url, build_short_url
from clicktrail.services.permissions import build_link_scope, require_link_access

logger = structlog.get_logger()

router = APIRouter(prefix="/link", tags=["links"])


async def to_response(service: LinkService, link: Link, request: Request) -> LinkResponse:
    """Serialize a link with its short and QR URLs."""
    domain_name = await service.domain_name_for(link.domain_id)
    response = LinkResponse.model_validate(link)
    response.short_url = build_short_url(request.url.scheme, domain_name, link.short_code)
    response.qr_url = build_qr_url(request.url.scheme, domain_name, link.short_code)
    return response


@router.post("/create", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_CREATE_LINK)
async def create_link(
    request: Request,
    link_data: LinkCreate,
    user: CurrentUserOptional,
    service: LinkServiceDep,
) -> LinkResponse:
    """Create a new shortened link with a generated short code.

    Anonymous callers may create plain links; custom domains and
    organizations require a session.
    """
    link = await service.create_link(user, link_data)
    record_link_operation("create")
    return await to_response(service, link, request)


@router.post("/update", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def update_link(
    request: Request,
    link_data: LinkUpdate,
    user: CurrentUser,
    repository: LinkRepositoryDep,
    service: LinkServiceDep,
) -> LinkResponse:
    """Update a link's properties. Unset fields are left unchanged."""
    link = await require_link_access(user, link_data.link_id, repository)
    updated = await service.update_link(user, link, link_data)
    record_link_operation("update")
    return await to_response(service, updated, request)


@router.post("/delete", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMIT_API)
async def delete_link(
    request: Request,
    link_data: LinkDelete,
    user: CurrentUser,
    repository: LinkRepositoryDep,
    service: LinkServiceDep,
) -> None:
    """Permanently delete a link and drop its cache entry."""
    link = await require_link_access(user, link_data.link_id, repository)
    await service.delete_link(link)
    record_link_operation("delete")


@router.get("/get", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_link(
    request: Request,
    user: CurrentUser,
    repository: LinkRepositoryDep,
    service: LinkServiceDep,
    link_id: Annotated[UUID, Query(alias="linkId")],
) -> LinkResponse:
    """Get a specific link by ID."""
    link = await require_link_access(user, link_id, repository)
    return await to_response(service, link, request)


@router.get("/list", response_model=LinkListResponse)
@limiter.limit(RATE_LIMIT_API)
async def list_links(
    request: Request,
    user: CurrentUser,
    repository: LinkRepositoryDep,
    service: LinkServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> LinkListResponse:
    """List links visible to the caller, newest first.

    Admins see every link; others see their own and their organizations'.
    """
    organization_ids = [] if user.is_admin else await repository.organization_ids_for(user.user_id)
    scope = [build_link_scope(user, organization_ids)]

    links = await repository.find(scope, limit=limit, offset=offset)
    total = await repository.count(scope)

    return LinkListResponse(
        items=[await to_response(service, link, request) for link in links],
        total=total,
        limit=limit,
        offset=offset,
    )
