"""
Asynchronous RabbitMQ client used to publish lifecycle events.
"""
import json
from typing import Optional

import aio_pika

from app_lifecycle.log.logging import logger


class AsyncRabbitMQClient:
    """
    An asynchronous RabbitMQ client using aio_pika.
    """

    def __init__(self, rabbitmq_url: str) -> None:
        self.rabbitmq_url = rabbitmq_url
        self.connection: Optional[aio_pika.RobustConnection] = None
        self.channel: Optional[aio_pika.RobustChannel] = None
        self._declared_queues: set[str] = set()

    @property
    def is_connected(self) -> bool:
        return self.connection is not None and not self.connection.is_closed

    async def connect(self) -> None:
        """Establishes a connection to RabbitMQ."""
        if self.is_connected:
            return
        try:
            self.connection = await aio_pika.connect_robust(self.rabbitmq_url)
            self.channel = await self.connection.channel()
            self._declared_queues.clear()
            logger.info(
                "RabbitMQ connection established",
                event_type="rabbitmq_connection_established"
            )
        except Exception as e:
            logger.error(
                "Failed to connect to RabbitMQ: {error}",
                error=str(e),
                event_type="rabbitmq_connection_failed"
            )
            raise

    async def ensure_queue(self, queue_name: str, durable: bool = True) -> None:
        """Declares the queue once per connection."""
        if queue_name in self._declared_queues:
            return
        await self.connect()
        await self.channel.declare_queue(queue_name, durable=durable)
        self._declared_queues.add(queue_name)
        logger.info(
            "Queue {queue_name} ensured (durability={durable})",
            queue_name=queue_name,
            durable=durable,
            event_type="queue_ensured"
        )

    async def publish_message(
        self,
        queue_name: str,
        message: dict,
        persistent: bool = True,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Publishes a JSON message to the queue through the default exchange."""
        await self.connect()
        await self.ensure_queue(queue_name)
        await self.channel.default_exchange.publish(
            aio_pika.Message(
                body=json.dumps(message, default=str).encode(),
                content_type="application/json",
                correlation_id=correlation_id,
                delivery_mode=(
                    aio_pika.DeliveryMode.PERSISTENT
                    if persistent
                    else aio_pika.DeliveryMode.NOT_PERSISTENT
                ),
            ),
            routing_key=queue_name,
        )
        logger.debug(
            "Message published to queue {queue_name}",
            queue_name=queue_name,
            event_type="message_published"
        )

    async def close(self) -> None:
        """Closes the RabbitMQ connection."""
        if self.is_connected:
            try:
                await self.connection.close()
                logger.info(
                    "RabbitMQ connection closed",
                    event_type="rabbitmq_connection_closed"
                )
            except Exception as e:
                logger.exception(
                    "Error while closing RabbitMQ connection: {error}",
                    error=str(e),
                    event_type="rabbitmq_connection_close_error",
                )
        self.connection = None
        self.channel = None
