import asyncio
import json
import logging
from typing import Any, Dict, Set, Tuple

from pydantic import ValidationError

from src.common.kafka import KafkaConsumer
from src.common.metrics import JOB_DURATION

from . import deps, schemas

logger = logging.getLogger(__name__)

_in_flight: Set[asyncio.Task] = set()

Committed = Dict[Tuple[Any, Any], int]


def _decode(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return json.loads(value.decode())
    return value


async def _handle_message(message) -> None:
    start = asyncio.get_event_loop().time()
    try:
        payload = schemas.ItineraryIn.model_validate(_decode(message.value))
        destinations = payload.to_destinations()
        store = deps.get_store()
        snapshot = store.replace(destinations)
        version = store.version
    except (ValidationError, ValueError) as exc:
        logger.warning("Skipping malformed itinerary event: %s", exc)
        return
    logger.info("Itinerary snapshot received with %d destinations", len(snapshot))
    await deps.get_pipeline().handle_itinerary_changed(snapshot, version)
    duration = asyncio.get_event_loop().time() - start
    JOB_DURATION.labels("route_synthesis", "handle_message").observe(duration)


async def _commit(consumer: KafkaConsumer, message, committed: Committed) -> None:
    # a newer message of the same partition may have been committed already
    partition = (message.topic, message.partition)
    if committed.get(partition, -1) > message.offset:
        return
    committed[partition] = message.offset + 1
    await consumer.commit(message)


async def _process(consumer: KafkaConsumer, message, committed: Committed) -> None:
    try:
        await _handle_message(message)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to handle itinerary event at offset %s", message.offset)
        return
    await _commit(consumer, message, committed)


async def _consume(settings: deps.Settings) -> None:
    assert settings.kafka_brokers is not None
    consumer = KafkaConsumer(
        settings.kafka_brokers,
        settings.itinerary_topic,
        settings.kafka_group_id,
    )
    handlers: Set[asyncio.Task] = set()
    committed: Committed = {}
    logger.info("Starting Kafka consumer loop")
    async with consumer:
        logger.info("Kafka consumer loop started")
        async for msg in consumer:
            # each snapshot runs on its own so a newer one can supersede it;
            # its offset is committed once it has been handled
            task = asyncio.create_task(_process(consumer, msg, committed))
            handlers.add(task)
            task.add_done_callback(handlers.discard)
        if handlers:
            await asyncio.gather(*handlers)


async def start_kafka_consumer(settings: deps.Settings) -> None:
    if not settings.kafka_brokers:
        logger.info("Kafka configuration missing. Consumer loop not started")
        return

    async def runner() -> None:
        try:
            await _consume(settings)
        except Exception:  # noqa: BLE001
            logger.exception("Kafka consumer loop terminated")

    task = asyncio.create_task(runner())
    _in_flight.add(task)
    task.add_done_callback(_in_flight.discard)
