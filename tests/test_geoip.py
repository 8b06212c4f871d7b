"""GeoIP service tests against a mocked ip-api endpoint."""

import httpx
import pytest

from clicktrail.services.geoip import GeoIPService


def service_with(handler) -> GeoIPService:
    service = GeoIPService(geoip_database_path="", api_url="http://geo.test/json", timeout=1.0)
    service._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return service


@pytest.mark.asyncio
async def test_ip_api_response_mapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/json/8.8.8.8"
        return httpx.Response(
            200,
            json={
                "status": "success",
                "country": "United States",
                "countryCode": "US",
                "region": "VA",
                "regionName": "Virginia",
                "city": "Ashburn",
                "lat": 39.03,
                "lon": -77.5,
                "timezone": "America/New_York",
                "isp": "Google LLC",
                "org": "Google Public DNS",
                "as": "AS15169 Google LLC",
                "proxy": False,
            },
        )

    service = service_with(handler)
    location = await service.lookup("8.8.8.8")
    await service.close()

    assert location.country_code == "US"
    assert location.region == "Virginia"
    assert location.region_code == "VA"
    assert location.asn == "AS15169"
    assert location.source == "ip-api"


@pytest.mark.asyncio
async def test_failed_lookup_is_empty() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "fail", "message": "reserved range"})

    service = service_with(handler)
    location = await service.lookup("8.8.4.4")
    await service.close()

    assert location.country == ""
    assert location.source == ""


@pytest.mark.asyncio
async def test_transport_error_is_empty() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    service = service_with(handler)
    location = await service.lookup("1.1.1.1")
    await service.close()

    assert location.city == ""


@pytest.mark.asyncio
async def test_private_address_skips_lookup() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    service = service_with(handler)
    location = await service.lookup("192.168.1.1")
    await service.close()

    assert location.country == ""
