import logging
from functools import lru_cache

from src.common.settings import Settings as CommonSettings

from .itinerary import ItineraryStore
from .legs import FALLBACK_STEPS
from .mapbox import MapboxClient, MapboxError, is_valid_token
from .pipeline import COUNTRIES_TOPIC, ROUTES_TOPIC, ItineraryPipeline

logger = logging.getLogger(__name__)


class Settings(CommonSettings):
    kafka_group_id: str = "route_synthesis"
    itinerary_topic: str = "itinerary.changed"
    routes_topic: str = ROUTES_TOPIC
    countries_topic: str = COUNTRIES_TOPIC
    mapbox_access_token: str | None = None
    mapbox_base_url: str = "https://api.mapbox.com"
    mapbox_timeout: float = 5.0
    geodesic_steps: int = FALLBACK_STEPS


@lru_cache
def get_settings() -> Settings:
    return Settings()


_client: MapboxClient | None = None
_store: ItineraryStore | None = None
_pipeline: ItineraryPipeline | None = None


def get_mapbox_client() -> MapboxClient | None:
    """Return the shared Mapbox client, or ``None`` to run on great circles only."""

    global _client
    if _client is not None:
        return _client
    settings = get_settings()
    token = settings.mapbox_access_token
    if not token:
        logger.info("Mapbox token not configured, routes fall back to great circles")
        return None
    if not is_valid_token(token):
        logger.warning("Mapbox token is malformed, routes fall back to great circles")
        return None
    try:
        _client = MapboxClient(
            token,
            base_url=settings.mapbox_base_url,
            timeout=settings.mapbox_timeout,
        )
    except MapboxError as exc:
        logger.error("Failed to initialise Mapbox client: %s", exc)
        return None
    return _client


def get_store() -> ItineraryStore:
    global _store
    if _store is None:
        _store = ItineraryStore()
    return _store


def get_pipeline() -> ItineraryPipeline:
    global _pipeline
    if _pipeline is None:
        settings = get_settings()
        _pipeline = ItineraryPipeline(
            get_mapbox_client(),
            steps=settings.geodesic_steps,
            routes_topic=settings.routes_topic,
            countries_topic=settings.countries_topic,
        )
    return _pipeline


async def close_resources() -> None:
    global _client, _pipeline
    _pipeline = None
    if _client is not None:
        await _client.aclose()
        _client = None
