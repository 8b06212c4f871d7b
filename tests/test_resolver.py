"""Resolver tests: cache-aside behavior, validation order and TTL clamping."""

from datetime import datetime, timedelta, timezone

import pytest

from clicktrail.core.exceptions import NotFoundError
from clicktrail.models.link import DomainStatus, LinkStatus
from clicktrail.services.link_cache import LinkCache, compute_ttl
from clicktrail.services.resolver import LinkResolver

from tests.conftest import FakeCacheStore, FakeLinkRepository

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_compute_ttl_without_expiry_uses_default() -> None:
    assert compute_ttl(None, 3600, NOW) == 3600


def test_compute_ttl_clamps_to_seconds_until_expiry() -> None:
    assert compute_ttl(NOW + timedelta(seconds=90.8), 3600, NOW) == 90
    assert compute_ttl(NOW + timedelta(days=2), 3600, NOW) == 3600


def test_compute_ttl_non_positive_for_expired_link() -> None:
    assert compute_ttl(NOW - timedelta(seconds=5), 3600, NOW) <= 0


@pytest.mark.asyncio
async def test_uncached_resolve_queries_once_and_caches(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
    cache_store: FakeCacheStore,
) -> None:
    repository.add_link("abc123", "https://example.com/page?utm_source=news&ref=x")

    link = await resolver.resolve("abc123", "test", now=NOW)

    assert link.original_url == "https://example.com/page?utm_source=news&ref=x"
    assert repository.lookups == 1
    assert cache_store.ttls["link:test:abc123"] == 3600

    again = await resolver.resolve("abc123", "test", now=NOW)
    assert again.id == link.id
    assert repository.lookups == 1


@pytest.mark.asyncio
async def test_cache_ttl_clamped_to_expiry(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
    cache_store: FakeCacheStore,
) -> None:
    repository.add_link("soon", expires_at=NOW + timedelta(minutes=10))

    await resolver.resolve("soon", "test", now=NOW)

    assert cache_store.ttls["link:test:soon"] == 600


@pytest.mark.asyncio
async def test_unknown_short_code_is_not_found(resolver: LinkResolver) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("missing", "test", now=NOW)
    assert exc_info.value.reason == "not_found"
    assert exc_info.value.message == "Link not found"


@pytest.mark.asyncio
async def test_inactive_link_is_not_found(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
) -> None:
    repository.add_link("off", status=LinkStatus.INACTIVE)

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("off", "test", now=NOW)
    assert exc_info.value.reason == "inactive"


@pytest.mark.asyncio
async def test_expired_link_is_not_found_and_not_cached(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
    cache_store: FakeCacheStore,
) -> None:
    repository.add_link("old", expires_at=NOW - timedelta(hours=1))

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("old", "test", now=NOW)
    assert exc_info.value.reason == "expired"
    assert "link:test:old" not in cache_store.data


@pytest.mark.asyncio
async def test_cached_link_past_expiry_is_not_found(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
) -> None:
    repository.add_link("edge", expires_at=NOW + timedelta(minutes=5))
    await resolver.resolve("edge", "test", now=NOW)

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("edge", "test", now=NOW + timedelta(minutes=6))
    assert exc_info.value.reason == "expired"
    assert repository.lookups == 1


@pytest.mark.asyncio
async def test_custom_domain_link_on_other_host_is_domain_mismatch(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
) -> None:
    domain = repository.add_domain("d.example")
    repository.add_link("promo", domain_id=domain.id)

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("promo", "other.example", now=NOW)
    assert exc_info.value.reason == "domain_mismatch"

    link = await resolver.resolve("promo", "d.example", now=NOW)
    assert link.domain_name == "d.example"


@pytest.mark.asyncio
async def test_domain_mismatch_even_when_other_host_has_valid_link(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
) -> None:
    d_example = repository.add_domain("d.example")
    other = repository.add_domain("other.example")
    repository.add_link("same", "https://d.example/landing", domain_id=d_example.id)
    repository.add_link("same", "https://other.example/landing", domain_id=other.id)

    link = await resolver.resolve("same", "other.example", now=NOW)
    assert link.original_url == "https://other.example/landing"

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("same", "third.example", now=NOW)
    assert exc_info.value.reason == "domain_mismatch"


@pytest.mark.asyncio
async def test_unverified_domain_is_not_found(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
) -> None:
    domain = repository.add_domain("new.example", status=DomainStatus.PENDING)
    repository.add_link("fresh", domain_id=domain.id)

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("fresh", "new.example", now=NOW)
    assert exc_info.value.reason == "domain_not_verified"


@pytest.mark.asyncio
async def test_missing_domain_row_is_not_found(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
) -> None:
    domain = repository.add_domain("gone.example")
    repository.add_link("orphan", domain_id=domain.id)
    del repository.domains[domain.id]

    with pytest.raises(NotFoundError) as exc_info:
        await resolver.resolve("orphan", "gone.example", now=NOW)
    assert exc_info.value.reason == "domain_not_found"


@pytest.mark.asyncio
async def test_cache_failure_falls_back_to_store(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
    cache_store: FakeCacheStore,
) -> None:
    repository.add_link("abc123")
    cache_store.fail = True

    link = await resolver.resolve("abc123", "test", now=NOW)

    assert link.short_code == "abc123"
    assert repository.lookups == 1


@pytest.mark.asyncio
async def test_cache_hit_is_trusted_without_store_query(
    link_cache: LinkCache,
    repository: FakeLinkRepository,
) -> None:
    link = repository.add_link("abc123", "https://example.com/")
    resolver = LinkResolver(link_cache, repository)
    await resolver.resolve("abc123", "test", now=NOW)

    link.original_url = "https://example.com/changed"
    cached = await resolver.resolve("abc123", "test", now=NOW)

    assert cached.original_url == "https://example.com/"
    assert repository.lookups == 1


@pytest.mark.asyncio
async def test_unreadable_cache_entry_falls_back_to_store(
    resolver: LinkResolver,
    repository: FakeLinkRepository,
    cache_store: FakeCacheStore,
) -> None:
    repository.add_link("abc123", "https://example.com/")
    cache_store.data["link:test:abc123"] = {"short_code": "abc123", "status": 42}

    link = await resolver.resolve("abc123", "test", now=NOW)

    assert link.original_url == "https://example.com/"
    assert repository.lookups == 1
    assert cache_store.data["link:test:abc123"]["original_url"] == "https://example.com/"
