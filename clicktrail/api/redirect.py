"""Redirect and QR endpoints for short links."""

import io

import segno
import structlog
from fastapi import APIRouter, BackgroundTasks, Request, status
from fastapi.responses import RedirectResponse, Response

from clicktrail.core.deps import ResolverDep, TrackerDep
from clicktrail.core.exceptions import BadRequestError, NotFoundError
from clicktrail.core.observability import record_redirect
from clicktrail.core.rate_limit import RATE_LIMIT_QR, RATE_LIMIT_REDIRECT, limiter
from clicktrail.schemas.link import CachedLink
from clicktrail.services.links import build_short_url
from clicktrail.services.resolver import LinkResolver
from clicktrail.services.tracker import RequestSnapshot

logger = structlog.get_logger()

router = APIRouter(tags=["redirect"])

QR_CACHE_CONTROL = "public, max-age=3600"


def request_host(request: Request) -> str:
    """Host the short link was requested on, port included."""
    return request.headers.get("host", "").strip().lower()


async def resolve_for_request(
    resolver: LinkResolver,
    short_code: str,
    request: Request,
) -> CachedLink:
    short_code = short_code.strip()
    if not short_code:
        record_redirect("bad_request")
        raise BadRequestError("Short code is required")

    try:
        return await resolver.resolve(short_code, request_host(request))
    except NotFoundError:
        record_redirect("not_found")
        raise


@router.get("/s/{short_code}")
@limiter.limit(RATE_LIMIT_REDIRECT)
async def redirect_to_original(
    request: Request,
    short_code: str,
    background_tasks: BackgroundTasks,
    resolver: ResolverDep,
    tracker: TrackerDep,
) -> RedirectResponse:
    """Redirect a short code to its original URL.

    The click is recorded after the response has been sent; tracking
    failures never reach the caller.
    """
    link = await resolve_for_request(resolver, short_code, request)

    background_tasks.add_task(tracker.track, RequestSnapshot.from_request(request), link)

    record_redirect("redirected")
    return RedirectResponse(url=link.original_url, status_code=status.HTTP_302_FOUND)


@router.get("/qr/{short_code}")
@limiter.limit(RATE_LIMIT_QR)
async def qr_code(
    request: Request,
    short_code: str,
    resolver: ResolverDep,
) -> Response:
    """SVG QR code for the canonical short URL. Does not record a click."""
    link = await resolve_for_request(resolver, short_code, request)

    url = build_short_url(request.url.scheme, link.domain_name, link.short_code)
    buffer = io.BytesIO()
    segno.make(url).save(buffer, kind="svg", scale=4)

    logger.debug("QR code rendered", short_code=link.short_code, url=url)
    return Response(
        content=buffer.getvalue(),
        media_type="image/svg+xml",
        headers={"Cache-Control": QR_CACHE_CONTROL},
    )
