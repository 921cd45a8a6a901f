"""Common utilities shared by the route synthesis services."""

__all__ = [
    "settings",
    "setup_otel",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "KafkaProducer",
    "KafkaConsumer",
]
