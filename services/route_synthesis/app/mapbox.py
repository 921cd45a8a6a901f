"""Интеграция с Mapbox Directions и Geocoding API."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import httpx
from opentelemetry import trace

from src.common.metrics import UPSTREAM_REQUESTS

from .models import Coordinate

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"^(pk|sk|tk)\.[A-Za-z0-9_\-.]+$")


class MapboxError(Exception):
    """Ошибка при обращении к Mapbox или некорректный ответ."""


def is_valid_token(token: str | None) -> bool:
    """Проверить, что токен похож на токен доступа Mapbox (``pk.…``, ``sk.…``, ``tk.…``)."""

    return bool(token) and _TOKEN_PATTERN.match(token.strip()) is not None


def _pair(point: Coordinate) -> str:
    return f"{point.lon},{point.lat}"


def _parse_coordinate(raw: Any) -> Coordinate | None:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return None
    lon, lat = raw[0], raw[1]
    if isinstance(lon, bool) or isinstance(lat, bool):
        return None
    if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
        return None
    try:
        return Coordinate(lon=float(lon), lat=float(lat))
    except ValueError:
        return None


class MapboxClient:
    """Асинхронный клиент Mapbox поверх одного ``httpx.AsyncClient``."""

    _tracer = trace.get_tracer(__name__)

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = "https://api.mapbox.com",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not is_valid_token(access_token):
            raise MapboxError("Некорректный токен доступа Mapbox")
        self._token = access_token.strip()
        self._timeout = timeout
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_json(self, api: str, path: str, params: dict[str, Any]) -> Any:
        query = {**params, "access_token": self._token}
        with self._tracer.start_as_current_span(f"mapbox.{api}"):
            try:
                # httpx.Timeout ограничивает каждую фазу отдельно, wait_for ограничивает весь запрос
                response = await asyncio.wait_for(
                    self._http.get(path, params=query), self._timeout
                )
                response.raise_for_status()
                payload = response.json()
            except asyncio.TimeoutError as exc:
                UPSTREAM_REQUESTS.labels("route_synthesis", api, "timeout").inc()
                raise MapboxError(
                    f"Mapbox {api} не ответил за {self._timeout} с"
                ) from exc
            except httpx.HTTPStatusError as exc:
                UPSTREAM_REQUESTS.labels("route_synthesis", api, "http_error").inc()
                raise MapboxError(
                    f"Mapbox {api} вернул статус {exc.response.status_code}"
                ) from exc
            except httpx.HTTPError as exc:
                UPSTREAM_REQUESTS.labels("route_synthesis", api, "transport_error").inc()
                raise MapboxError(f"Mapbox {api} недоступен: {exc!r}") from exc
            except ValueError as exc:
                UPSTREAM_REQUESTS.labels("route_synthesis", api, "bad_payload").inc()
                raise MapboxError(f"Mapbox {api} вернул не JSON") from exc
        UPSTREAM_REQUESTS.labels("route_synthesis", api, "ok").inc()
        return payload

    async def directions(
        self, profile: str, origin: Coordinate, destination: Coordinate
    ) -> list[Coordinate]:
        """Запросить маршрут и вернуть полную геометрию лучшего варианта."""

        payload = await self._get_json(
            "directions",
            f"/directions/v5/mapbox/{profile}/{_pair(origin)};{_pair(destination)}",
            {"geometries": "geojson", "overview": "full"},
        )
        if not isinstance(payload, dict):
            raise MapboxError("Mapbox directions: неожиданный формат ответа")
        routes = payload.get("routes")
        if not isinstance(routes, list) or not routes:
            raise MapboxError(
                f"Mapbox directions не вернул маршрутов (code={payload.get('code')})"
            )
        best = routes[0]
        geometry = best.get("geometry") if isinstance(best, dict) else None
        raw_coords = geometry.get("coordinates") if isinstance(geometry, dict) else None
        if not isinstance(raw_coords, list):
            raise MapboxError("Mapbox directions: в маршруте нет геометрии")
        coords = [_parse_coordinate(item) for item in raw_coords]
        if len(coords) < 2 or any(c is None for c in coords):
            raise MapboxError("Mapbox directions: пустая или повреждённая геометрия")
        return coords  # type: ignore[return-value]

    async def reverse_country(self, point: Coordinate) -> str | None:
        """Вернуть ``short_code`` страны для точки или ``None``, если её нет."""

        payload = await self._get_json(
            "geocoding",
            f"/geocoding/v5/mapbox.places/{_pair(point)}.json",
            {"types": "country", "limit": 1},
        )
        if not isinstance(payload, dict):
            raise MapboxError("Mapbox geocoding: неожиданный формат ответа")
        features = payload.get("features")
        if not isinstance(features, list) or not features:
            return None
        first = features[0]
        properties = first.get("properties") if isinstance(first, dict) else None
        short_code = (
            properties.get("short_code") if isinstance(properties, dict) else None
        )
        return short_code if isinstance(short_code, str) and short_code else None
