"""Analytics and events endpoint tests."""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from jose import jwt

from clicktrail.aggregators.analytics import EVENT_COLUMNS
from clicktrail.core.config import get_settings
from clicktrail.core.security import ALGORITHM
from clicktrail.schemas.click import ClickEvent

from tests.conftest import FakeAnalyticsStore, FakeLinkRepository

START = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture
def owned_link_id(repository: FakeLinkRepository, user_id: UUID) -> str:
    return str(repository.add_link("abc123", user_id=user_id).id)


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient, owned_link_id: str) -> None:
    response = await client.get("/link/analytics", params={"linkId": owned_link_id})

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_token_is_401(client: AsyncClient, owned_link_id: str) -> None:
    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("subject", [12345, ["not", "a", "uuid"], "not-a-uuid"])
async def test_token_with_unusable_subject_is_401(
    client: AsyncClient,
    owned_link_id: str,
    subject: object,
) -> None:
    token = jwt.encode(
        {"sub": subject, "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        get_settings().secret_key,
        algorithm=ALGORITHM,
    )

    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_accepted_from_cookie(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
) -> None:
    token = auth_headers["Authorization"].removeprefix("Bearer ")

    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id},
        headers={"Cookie": f"clicktrail_token={token}"},
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_count(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
    analytics_store: FakeAnalyticsStore,
) -> None:
    analytics_store.results.append([{"total_clicks": 1000}])

    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id, "groupBy": "count"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"totalClicks": 1000, "uniqueVisitors": 700}


@pytest.mark.asyncio
async def test_unknown_group_by_is_400(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
) -> None:
    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id, "groupBy": "passwords"},
        headers=auth_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_start_after_end_is_400(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
) -> None:
    response = await client.get(
        "/link/analytics",
        params={
            "linkId": owned_link_id,
            "groupBy": "count",
            "start": "2024-05-02T00:00:00Z",
            "end": "2024-05-01T00:00:00Z",
        },
        headers=auth_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_missing_link_is_404(client: AsyncClient, auth_headers: dict[str, str]) -> None:
    response = await client.get(
        "/link/analytics",
        params={"linkId": str(uuid4())},
        headers=auth_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_other_users_link_is_403(
    client: AsyncClient,
    repository: FakeLinkRepository,
    auth_headers: dict[str, str],
) -> None:
    link = repository.add_link("theirs", user_id=uuid4())

    response = await client.get(
        "/link/analytics",
        params={"linkId": str(link.id)},
        headers=auth_headers,
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_read_any_link(
    client: AsyncClient,
    repository: FakeLinkRepository,
    admin_headers: dict[str, str],
) -> None:
    link = repository.add_link("theirs", user_id=uuid4())

    response = await client.get(
        "/link/analytics",
        params={"linkId": str(link.id)},
        headers=admin_headers,
    )

    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(("role", "expected"), [("owner", 200), ("admin", 200), ("member", 403)])
async def test_organization_roles(
    client: AsyncClient,
    repository: FakeLinkRepository,
    auth_headers: dict[str, str],
    user_id: UUID,
    role: str,
    expected: int,
) -> None:
    organization_id = uuid4()
    link = repository.add_link("team", user_id=uuid4(), organization_id=organization_id)
    repository.add_member(organization_id, user_id, role=role)

    response = await client.get(
        "/link/analytics",
        params={"linkId": str(link.id)},
        headers=auth_headers,
    )

    assert response.status_code == expected


@pytest.mark.asyncio
async def test_dimension_breakdown(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
    analytics_store: FakeAnalyticsStore,
) -> None:
    analytics_store.results.append([{"browser_name": "Firefox", "clicks": 5}])

    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id, "groupBy": "browsers"},
        headers=auth_headers,
    )

    assert response.json() == {"data": [{"browserName": "Firefox", "clicks": 5}]}


@pytest.mark.asyncio
async def test_timeseries_hourly(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
    analytics_store: FakeAnalyticsStore,
) -> None:
    analytics_store.results.append([{"timestamp": START, "clicks": 2}])

    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id, "groupBy": "timeseries"},
        headers=auth_headers,
    )

    data = response.json()["data"]
    assert len(data) == 1
    assert data[0]["clicks"] == 2
    assert datetime.fromisoformat(data[0]["timestamp"]) == START


@pytest.mark.asyncio
async def test_timeseries_rebucketed(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
    analytics_store: FakeAnalyticsStore,
) -> None:
    analytics_store.results.append(
        [{"timestamp": START + timedelta(hours=h), "clicks": 1} for h in range(30)]
    )

    response = await client.get(
        "/link/analytics",
        params={
            "linkId": owned_link_id,
            "groupBy": "timeseries",
            "granularity": "auto",
            "start": "2024-05-01T00:00:00Z",
            "end": "2024-05-03T02:00:00Z",
        },
        headers=auth_headers,
    )

    body = response.json()
    assert body["granularity"] == "day"
    assert [(row["bucket"], row["clicks"]) for row in body["data"]] == [
        ("2024-05-01", 24),
        ("2024-05-02", 6),
    ]


@pytest.mark.asyncio
async def test_invalid_granularity_is_400(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
) -> None:
    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id, "groupBy": "timeseries", "granularity": "decade"},
        headers=auth_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_invalid_granularity_is_400_for_any_grouping(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
    analytics_store: FakeAnalyticsStore,
) -> None:
    response = await client.get(
        "/link/analytics",
        params={"linkId": owned_link_id, "groupBy": "countries", "granularity": "decade"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert analytics_store.queries == []


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/link/analytics", "/link/events"])
@pytest.mark.parametrize("params", [{}, {"linkId": ""}, {"linkId": "not-a-uuid"}])
async def test_missing_or_malformed_link_id_is_400(
    client: AsyncClient,
    auth_headers: dict[str, str],
    path: str,
    params: dict[str, str],
) -> None:
    response = await client.get(path, params=params, headers=auth_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_events_listing(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
    analytics_store: FakeAnalyticsStore,
) -> None:
    event = ClickEvent(
        link_id=UUID(owned_link_id),
        short_code="abc123",
        original_url="https://example.com/",
        ip="8.8.8.8",
        user_agent="Mozilla/5.0",
        country="Norway",
        utm_source="ads",
    )
    row = {name: value for name, value in event.model_dump().items() if name in EVENT_COLUMNS}
    analytics_store.results.extend([[row], [{"total": 1}]])

    response = await client.get(
        "/link/events",
        params={"linkId": owned_link_id, "limit": 10},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["limit"] == 10
    assert body["offset"] == 0
    item = body["events"][0]
    assert item["country"] == "Norway"
    assert item["utmSource"] == "ads"
    assert "ip" not in item
    assert "userAgent" not in item
    assert "referrer" not in item


@pytest.mark.asyncio
async def test_events_limit_bounds(
    client: AsyncClient,
    owned_link_id: str,
    auth_headers: dict[str, str],
) -> None:
    too_small = await client.get(
        "/link/events",
        params={"linkId": owned_link_id, "limit": 0},
        headers=auth_headers,
    )
    too_large = await client.get(
        "/link/events",
        params={"linkId": owned_link_id, "limit": 1001},
        headers=auth_headers,
    )

    assert too_small.status_code == 422
    assert too_large.status_code == 422
