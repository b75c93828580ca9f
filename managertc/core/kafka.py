"""
Kafka producer for domain events.

Publishing is best effort: a disabled or unreachable broker is logged and the
request that produced the event carries on.
"""

import json
from typing import Optional

from aiokafka import AIOKafkaProducer

from managertc.core.cache import json_serializer
from managertc.core.config import settings
from managertc.core.events import EventEnvelope
from managertc.core.logging import get_logger

logger = get_logger(__name__)


class KafkaProducer:
    _instance: Optional[AIOKafkaProducer] = None

    @classmethod
    async def get_producer(cls) -> AIOKafkaProducer:
        if cls._instance is None:
            producer = AIOKafkaProducer(
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                value_serializer=lambda v: json.dumps(
                    v, default=json_serializer
                ).encode("utf-8"),
                key_serializer=lambda k: k.encode("utf-8") if k else None,
            )
            await producer.start()
            cls._instance = producer
            logger.info(
                f"Kafka producer connected to {settings.KAFKA_BOOTSTRAP_SERVERS}"
            )
        return cls._instance

    @classmethod
    async def close(cls):
        if cls._instance:
            await cls._instance.stop()
            cls._instance = None
            logger.info("Kafka producer closed")


async def publish_event(topic: str, event: EventEnvelope, key: Optional[str] = None) -> bool:
    """
    Publish an event envelope to a topic.

    Returns:
        True when the broker acknowledged the message
    """
    if not settings.KAFKA_ENABLED:
        logger.debug(f"Kafka disabled, skipping {event.event_type.value} on {topic}")
        return False
    try:
        producer = await KafkaProducer.get_producer()
        await producer.send_and_wait(
            topic, event.model_dump(mode="json"), key=key or event.event_id
        )
        logger.info(f"Published {event.event_type.value} to {topic}")
        return True
    except Exception as e:
        logger.error(f"Failed to publish {event.event_type.value} to {topic}: {e}")
        return False
