"""Kafka helpers built around aiokafka."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Final

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.structs import TopicPartition
from opentelemetry import trace


def split_brokers(brokers: str) -> list[str]:
    """Разобрать строку брокеров вида ``host:port,host:port``."""

    return [item.strip() for item in brokers.split(",") if item.strip()]


class KafkaProducer:
    """Kafka-продюсер с компактной JSON-сериализацией."""

    __slots__ = ("_producer", "_started")

    _tracer = trace.get_tracer(__name__)
    _empty_bytes: Final[bytes] = b""

    def __init__(self, brokers: str, *, client_id: str | None = None) -> None:
        # Русский комментарий: одно соединение на весь процесс сервиса.
        self._producer = AIOKafkaProducer(
            bootstrap_servers=split_brokers(brokers),
            client_id=client_id,
            value_serializer=self._serialize,
            key_serializer=self._serialize_key,
        )
        self._started = False

    @staticmethod
    def _serialize(value: Any) -> bytes:
        """Готовые байты и строки передаём как есть, остальное в JSON."""

        if value is None:
            return b"null"
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode("utf-8")
        return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode(
            "utf-8"
        )

    @classmethod
    def _serialize_key(cls, value: Any) -> bytes:
        if value is None:
            return cls._empty_bytes
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        return str(value).encode("utf-8")

    async def start(self) -> None:
        """Запустить клиента aiokafka (повторный вызов ничего не делает)."""

        if self._started:
            return
        await self._producer.start()
        self._started = True

    async def stop(self) -> None:
        """Остановить продюсер, если он активен."""

        if not self._started:
            return
        await self._producer.stop()
        self._started = False

    async def send(self, topic: str, key: Any, value: Any) -> None:
        """Отправить сообщение и дождаться подтверждения брокера."""

        if not self._started:
            raise RuntimeError("KafkaProducer must be started before sending messages")
        with self._tracer.start_as_current_span(f"event.produce:{topic}"):
            await self._producer.send_and_wait(topic, value=value, key=key)

    async def __aenter__(self) -> "KafkaProducer":
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()


class KafkaConsumer:
    """Kafka-консьюмер с JSON-десериализацией и ручным коммитом."""

    __slots__ = ("_consumer", "_started")

    def __init__(
        self,
        brokers: str,
        topic: str,
        group_id: str,
        *,
        auto_offset_reset: str = "latest",
    ) -> None:
        self._consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=split_brokers(brokers),
            group_id=group_id,
            auto_offset_reset=auto_offset_reset,
            enable_auto_commit=False,
            value_deserializer=self._deserialize,
            key_deserializer=self._deserialize,
        )
        self._started = False

    @staticmethod
    def _deserialize(data: bytes | None) -> Any:
        if not data:
            return None
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return data

    async def start(self) -> None:
        if self._started:
            return
        await self._consumer.start()
        self._started = True

    async def stop(self) -> None:
        if not self._started:
            return
        await self._consumer.stop()
        self._started = False

    async def commit(self, message: Any = None) -> None:
        """Зафиксировать смещения обработанных сообщений.

        Если передано сообщение, фиксируется только его партиция до этого
        сообщения включительно.
        """

        if message is None:
            await self._consumer.commit()
            return
        partition = TopicPartition(message.topic, message.partition)
        await self._consumer.commit({partition: message.offset + 1})

    async def __aenter__(self) -> "KafkaConsumer":
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def __aiter__(self) -> AsyncIterator[Any]:
        if not self._started:
            raise RuntimeError("KafkaConsumer must be started before iteration")
        return self._consume()

    async def _consume(self) -> AsyncIterator[Any]:
        # Русский комментарий: отдаём сырой объект сообщения aiokafka,
        # value и key уже десериализованы.
        async for msg in self._consumer:
            yield msg
