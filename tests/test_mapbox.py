import asyncio
import time

import httpx
import pytest

from services.route_synthesis.app.mapbox import MapboxClient, MapboxError, is_valid_token
from services.route_synthesis.app.models import Coordinate

MADRID = Coordinate(lon=-3.7, lat=40.42)
PARIS = Coordinate(lon=2.35, lat=48.86)

pytestmark = pytest.mark.anyio


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


def _client(handler) -> MapboxClient:
    return MapboxClient("pk.test-token", transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "token, expected",
    [
        ("pk.eyJ1IjoidGVzdCJ9.abc", True),
        ("sk.secret", True),
        (" pk.padded ", True),
        ("", False),
        (None, False),
        ("pk.", False),
        ("not-a-token", False),
    ],
)
def test_token_shape(token: str | None, expected: bool) -> None:
    assert is_valid_token(token) is expected


def test_client_refuses_malformed_token() -> None:
    with pytest.raises(MapboxError):
        MapboxClient("bogus")


async def test_directions_returns_full_geometry() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "code": "Ok",
                "routes": [
                    {
                        "geometry": {
                            "type": "LineString",
                            "coordinates": [[-3.7, 40.42], [0.0, 45.0], [2.35, 48.86]],
                        }
                    }
                ],
            },
        )

    client = _client(handler)
    try:
        path = await client.directions("driving", MADRID, PARIS)
    finally:
        await client.aclose()

    assert path == [MADRID, Coordinate(0.0, 45.0), PARIS]
    request = seen[0]
    assert request.url.path == "/directions/v5/mapbox/driving/-3.7,40.42;2.35,48.86"
    assert request.url.params["geometries"] == "geojson"
    assert request.url.params["overview"] == "full"
    assert request.url.params["access_token"] == "pk.test-token"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"message": "boom"}),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json={"code": "NoRoute", "routes": []}),
        httpx.Response(200, json={"routes": [{"geometry": None}]}),
        httpx.Response(200, json={"routes": [{"geometry": {"coordinates": [[1, 2]]}}]}),
        httpx.Response(
            200, json={"routes": [{"geometry": {"coordinates": [[1, 2], "x"]}}]}
        ),
        httpx.Response(200, json=["unexpected"]),
    ],
)
async def test_directions_failures_raise_mapbox_error(response: httpx.Response) -> None:
    client = _client(lambda request: response)
    try:
        with pytest.raises(MapboxError):
            await client.directions("walking", MADRID, PARIS)
    finally:
        await client.aclose()


async def test_timeout_is_a_mapbox_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)
    try:
        with pytest.raises(MapboxError):
            await client.directions("cycling", MADRID, PARIS)
    finally:
        await client.aclose()


async def test_slow_response_is_cut_off_by_overall_timeout() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={"routes": []})

    client = MapboxClient(
        "pk.test-token", timeout=0.05, transport=httpx.MockTransport(handler)
    )
    started = time.monotonic()
    try:
        with pytest.raises(MapboxError):
            await client.directions("driving", MADRID, PARIS)
    finally:
        await client.aclose()
    assert time.monotonic() - started < 1.0


async def test_reverse_country_reads_short_code() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"features": [{"properties": {"short_code": "es"}, "text": "Spain"}]},
        )

    client = _client(handler)
    try:
        code = await client.reverse_country(MADRID)
    finally:
        await client.aclose()

    assert code == "es"
    assert seen[0].url.path == "/geocoding/v5/mapbox.places/-3.7,40.42.json"
    assert seen[0].url.params["types"] == "country"


async def test_reverse_country_without_features_is_none() -> None:
    client = _client(lambda request: httpx.Response(200, json={"features": []}))
    try:
        assert await client.reverse_country(MADRID) is None
    finally:
        await client.aclose()
