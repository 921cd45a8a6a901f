from fastapi import FastAPI

from src.common.kafka import KafkaProducer
from src.common.logging import get_logger, setup_logging
from src.common.metrics import JOB_DURATION, KAFKA_CONSUMER_LAG, setup_metrics
from src.common.telemetry import setup_otel

from . import deps
from .api import router
from .kafka_loop import start_kafka_consumer

setup_logging(deps.get_settings().log_level, service="route_synthesis")
logger = get_logger(__name__)

app = FastAPI(title="route_synthesis")
setup_metrics(app, "route_synthesis")
setup_otel(app, "route_synthesis")

_producer: KafkaProducer | None = None


@app.on_event("startup")
async def on_startup() -> None:
    global _producer
    settings = deps.get_settings()
    pipeline = deps.get_pipeline()
    if settings.kafka_brokers:
        _producer = KafkaProducer(settings.kafka_brokers, client_id="route_synthesis")
        await _producer.start()
        pipeline.producer = _producer
    await start_kafka_consumer(settings)
    logger.info(
        "startup",
        routing_enabled=deps.get_mapbox_client() is not None,
        kafka_enabled=bool(settings.kafka_brokers),
    )
    KAFKA_CONSUMER_LAG.labels("route_synthesis", settings.itinerary_topic).set(0)
    JOB_DURATION.labels("route_synthesis", "startup").observe(0)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    global _producer
    if _producer is not None:
        await _producer.stop()
        _producer = None
    await deps.close_resources()


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/readyz")
async def readyz() -> dict[str, str]:
    return {"status": "ready"}


app.include_router(router)
