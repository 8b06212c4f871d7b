"""Dependency injection utilities for FastAPI routes.

Every service is built through a provider here so tests can swap it with
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Cookie, Depends, Header

from clicktrail.aggregators.analytics import AnalyticsAggregator
from clicktrail.core.config import get_settings
from clicktrail.core.database import AsyncSessionDep
from clicktrail.core.exceptions import UnauthorizedError
from clicktrail.core.redis import RedisCacheStore, get_cache_store
from clicktrail.core.security import SessionUser, decode_access_token
from clicktrail.services.analytics_store import get_analytics_store
from clicktrail.services.geoip import get_geoip_service
from clicktrail.services.link_cache import LinkCache
from clicktrail.services.links import LinkService
from clicktrail.services.repository import LinkRepository
from clicktrail.services.resolver import LinkResolver
from clicktrail.services.tracker import ClickTracker

settings = get_settings()

# Cookie name for auth token
AUTH_COOKIE_NAME = "clicktrail_token"


async def get_token(
    clicktrail_token: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Extract the auth token from the httpOnly cookie or a Bearer header."""
    if clicktrail_token:
        return clicktrail_token
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return None


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token)],
) -> SessionUser | None:
    """Get the caller from the token if present and valid, otherwise None.

    Use this for routes that work with or without authentication.
    """
    if token is None:
        return None
    return decode_access_token(token)


async def get_current_user(
    token: Annotated[str | None, Depends(get_token)],
) -> SessionUser:
    """Get the authenticated caller.

    Raises UnauthorizedError (401) if the token is missing or invalid.
    """
    if token is None:
        raise UnauthorizedError()

    user = decode_access_token(token)
    if user is None:
        raise UnauthorizedError("Invalid or expired token")

    return user


def get_link_cache(
    store: Annotated[RedisCacheStore, Depends(get_cache_store)],
) -> LinkCache:
    return LinkCache(
        store,
        prefix=settings.link_cache_prefix,
        default_ttl=settings.link_cache_ttl,
    )


def get_link_repository(session: AsyncSessionDep) -> LinkRepository:
    return LinkRepository(session)


def get_resolver(
    cache: Annotated[LinkCache, Depends(get_link_cache)],
    repository: Annotated[LinkRepository, Depends(get_link_repository)],
) -> LinkResolver:
    return LinkResolver(cache, repository)


def get_link_service(
    cache: Annotated[LinkCache, Depends(get_link_cache)],
    repository: Annotated[LinkRepository, Depends(get_link_repository)],
) -> LinkService:
    return LinkService(repository, cache, settings)


def get_tracker() -> ClickTracker:
    return ClickTracker(store=get_analytics_store(), geoip=get_geoip_service())


def get_aggregator() -> AnalyticsAggregator:
    return AnalyticsAggregator(get_analytics_store(), max_rows=settings.analytics_max_rows)


# Type aliases for dependency injection
CurrentUser = Annotated[SessionUser, Depends(get_current_user)]
CurrentUserOptional = Annotated[SessionUser | None, Depends(get_current_user_optional)]
LinkRepositoryDep = Annotated[LinkRepository, Depends(get_link_repository)]
LinkServiceDep = Annotated[LinkService, Depends(get_link_service)]
ResolverDep = Annotated[LinkResolver, Depends(get_resolver)]
TrackerDep = Annotated[ClickTracker, Depends(get_tracker)]
AggregatorDep = Annotated[AnalyticsAggregator, Depends(get_aggregator)]
