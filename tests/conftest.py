"""Shared pytest fixtures: in-memory collaborators and an ASGI test client."""

import os

# Configure before clicktrail reads its settings
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DEFAULT_HOST", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError

from clicktrail.aggregators.analytics import AnalyticsAggregator
from clicktrail.core.deps import get_aggregator, get_link_cache, get_link_repository, get_tracker
from clicktrail.core.redis import get_cache_store
from clicktrail.core.security import create_access_token
from clicktrail.main import app
from clicktrail.models.link import Domain, DomainStatus, Link, LinkStatus
from clicktrail.models.member import Member
from clicktrail.schemas.click import ClickEvent
from clicktrail.services.analytics_store import ClickQuery
from clicktrail.services.geoip import GeoLocation
from clicktrail.services.link_cache import LinkCache
from clicktrail.services.resolver import LinkResolver
from clicktrail.services.tracker import ClickTracker


class FakeCacheStore:
    """Dict-backed cache store that remembers the TTL of every write."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, Any]] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False

    async def get(self, key: str) -> dict[str, Any] | None:
        if self.fail:
            raise ConnectionError("cache down")
        return self.data.get(key)

    async def set(self, key: str, value: dict[str, Any], ttl: int) -> None:
        if self.fail:
            raise ConnectionError("cache down")
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> None:
        if self.fail:
            raise ConnectionError("cache down")
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    async def ping(self) -> bool:
        return not self.fail


class FakeLinkRepository:
    """In-memory stand-in for LinkRepository.

    ``lookups`` counts resolver queries; filter clauses passed to ``find`` and
    ``count`` are recorded rather than evaluated. Updates and deletes stay
    pending until ``commit``, which first awaits ``before_commit`` hooks.
    """

    def __init__(self) -> None:
        self.links: dict[UUID, Link] = {}
        self.domains: dict[UUID, Domain] = {}
        self.members: list[Member] = []
        self.lookups = 0
        self.last_scope: list[Any] | None = None
        self.pending: list[Callable[[], None]] = []
        self.before_commit: list[Callable[[], Awaitable[Any]]] = []
        self.commits = 0
        self.unique_violation = False

    def add_domain(self, domain_name: str, status: DomainStatus = DomainStatus.ACTIVE, **fields: Any) -> Domain:
        domain = Domain(id=uuid4(), domain_name=domain_name, status=status, **fields)
        self.domains[domain.id] = domain
        return domain

    def add_link(self, short_code: str, original_url: str = "https://example.com/", **fields: Any) -> Link:
        fields.setdefault("status", LinkStatus.ACTIVE)
        now = datetime.now(timezone.utc)
        link = Link(
            id=uuid4(),
            short_code=short_code,
            original_url=original_url,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.links[link.id] = link
        return link

    def add_member(self, organization_id: UUID, user_id: UUID, role: str = "member") -> Member:
        member = Member(id=uuid4(), organization_id=organization_id, user_id=user_id, role=role)
        self.members.append(member)
        return member

    async def find_by_short_code_with_domain(self, short_code: str) -> list[tuple[Link, Domain | None]]:
        self.lookups += 1
        return [
            (link, self.domains.get(link.domain_id) if link.domain_id else None)
            for link in self.links.values()
            if link.short_code == short_code
        ]

    async def get(self, link_id: UUID) -> Link | None:
        return self.links.get(link_id)

    async def get_domain(self, domain_id: UUID) -> Domain | None:
        return self.domains.get(domain_id)

    async def get_membership(self, organization_id: UUID, user_id: UUID) -> Member | None:
        for member in self.members:
            if member.organization_id == organization_id and member.user_id == user_id:
                return member
        return None

    async def organization_ids_for(self, user_id: UUID) -> list[UUID]:
        return [member.organization_id for member in self.members if member.user_id == user_id]

    async def short_code_exists(self, short_code: str, domain_id: UUID | None) -> bool:
        return any(
            link.short_code == short_code and link.domain_id == domain_id
            for link in self.links.values()
        )

    async def find(self, where: Any = (), limit: int = 20, offset: int = 0) -> list[Link]:
        self.last_scope = list(where)
        links = sorted(self.links.values(), key=lambda link: link.created_at, reverse=True)
        return links[offset : offset + limit]

    async def count(self, where: Any = ()) -> int:
        return len(self.links)

    def _check_unique(self) -> None:
        if self.unique_violation:
            raise IntegrityError("INSERT INTO api.links", {}, Exception("duplicate key value"))

    async def create(self, **fields: Any) -> Link:
        self._check_unique()
        short_code = fields.pop("short_code")
        original_url = fields.pop("original_url")
        return self.add_link(short_code, original_url, **fields)

    async def update(self, link: Link, changes: dict[str, Any]) -> Link:
        self._check_unique()

        def apply() -> None:
            for name, value in changes.items():
                setattr(link, name, value)

        self.pending.append(apply)
        return link

    async def delete(self, link: Link) -> None:
        self.pending.append(lambda: self.links.pop(link.id, None))

    async def commit(self) -> None:
        for hook in self.before_commit:
            await hook()
        for apply in self.pending:
            apply()
        self.pending.clear()
        self.commits += 1


class FakeAnalyticsStore:
    """Records inserted events and executed queries.

    ``results`` is a queue of row lists returned by successive ``execute`` calls.
    """

    def __init__(self) -> None:
        self.events: list[ClickEvent] = []
        self.queries: list[ClickQuery] = []
        self.results: list[list[dict[str, Any]]] = []
        self.fail_inserts = False

    async def insert(self, event: ClickEvent) -> None:
        if self.fail_inserts:
            raise ConnectionError("analytics store down")
        self.events.append(event)

    async def execute(self, query: ClickQuery) -> list[dict[str, Any]]:
        self.queries.append(query)
        if self.results:
            return self.results.pop(0)
        return []


class FakeGeo:
    def __init__(self, location: GeoLocation | None = None) -> None:
        self.location = location or GeoLocation(
            country="Norway",
            country_code="NO",
            city="Oslo",
            latitude=59.91,
            longitude=10.75,
            source="test",
        )
        self.fail = False
        self.looked_up: list[str | None] = []

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        self.looked_up.append(ip_address)
        if self.fail:
            raise TimeoutError("geolocation timed out")
        return self.location


@pytest.fixture
def cache_store() -> FakeCacheStore:
    return FakeCacheStore()


@pytest.fixture
def link_cache(cache_store: FakeCacheStore) -> LinkCache:
    return LinkCache(cache_store, prefix="link:", default_ttl=3600)


@pytest.fixture
def repository() -> FakeLinkRepository:
    return FakeLinkRepository()


@pytest.fixture
def resolver(link_cache: LinkCache, repository: FakeLinkRepository) -> LinkResolver:
    return LinkResolver(link_cache, repository)


@pytest.fixture
def analytics_store() -> FakeAnalyticsStore:
    return FakeAnalyticsStore()


@pytest.fixture
def geo() -> FakeGeo:
    return FakeGeo()


@pytest.fixture
def tracker(analytics_store: FakeAnalyticsStore, geo: FakeGeo) -> ClickTracker:
    return ClickTracker(store=analytics_store, geoip=geo)


@pytest.fixture
def aggregator(analytics_store: FakeAnalyticsStore) -> AnalyticsAggregator:
    return AnalyticsAggregator(analytics_store, max_rows=50)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def auth_headers(user_id: UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(uuid4(), role='admin')}"}


@pytest_asyncio.fixture(scope="function")
async def client(
    cache_store: FakeCacheStore,
    link_cache: LinkCache,
    repository: FakeLinkRepository,
    tracker: ClickTracker,
    aggregator: AnalyticsAggregator,
) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_cache_store] = lambda: cache_store
    app.dependency_overrides[get_link_cache] = lambda: link_cache
    app.dependency_overrides[get_link_repository] = lambda: repository
    app.dependency_overrides[get_tracker] = lambda: tracker
    app.dependency_overrides[get_aggregator] = lambda: aggregator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
