"""
Publishing of lifecycle events to RabbitMQ.

Every successful transition emits an ``application.<transition>`` event for
downstream consumers (candidate notifications, the admin dashboard feed).
Publishing is best effort: a broker outage is logged and counted but never
undoes or fails the transition that was already committed.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from app_lifecycle.core.config import Settings
from app_lifecycle.core.correlation import get_correlation_id
from app_lifecycle.core.metrics import record_event_published
from app_lifecycle.core.rabbitmq_client import AsyncRabbitMQClient
from app_lifecycle.log.logging import logger
from app_lifecycle.models.application import Application


class BasePublisher(ABC):
    def __init__(self, settings: Settings, rabbitmq_client: Optional[AsyncRabbitMQClient] = None):
        self.settings = settings
        self.rabbitmq_client = rabbitmq_client or AsyncRabbitMQClient(settings.rabbitmq_url)
        self.queue_name = self.get_queue_name()

    @abstractmethod
    def get_queue_name(self) -> str:
        """Return the RabbitMQ queue name."""
        pass

    async def publish(self, message: dict, persistent: bool = True) -> None:
        """Publishes the message on the queue"""
        await self.rabbitmq_client.publish_message(
            self.queue_name,
            message,
            persistent=persistent,
            correlation_id=message.get("correlation_id"),
        )

    async def close(self) -> None:
        await self.rabbitmq_client.close()


class LifecycleEventPublisher(BasePublisher):
    """
    Publisher for application lifecycle events.
    """

    # Schema version for backward compatibility tracking
    SCHEMA_VERSION = "1.0"

    def get_queue_name(self) -> str:
        return self.settings.lifecycle_events_queue

    @property
    def enabled(self) -> bool:
        return self.settings.events_enabled

    async def publish_transition(
        self,
        transition: str,
        application: Application,
        previous_status: Optional[str] = None,
        **extra,
    ) -> None:
        """
        Publish an ``application.<transition>`` event.

        Args:
            transition: Transition name, e.g. 'approved' or 'withdrawal_requested'.
            application: The application after the transition.
            previous_status: Status before the transition, when there was one.
            **extra: Additional event fields such as ``auto_declined_count``.
        """
        if not self.enabled:
            return

        payload = self.build_event_payload(transition, application, previous_status, **extra)
        try:
            await self.publish(payload)
        except Exception as e:
            record_event_published(payload["event"], "failed")
            logger.error(
                "Failed to publish lifecycle event",
                event=payload["event"],
                application_id=payload["application_id"],
                error=str(e),
                event_type="lifecycle_event_publish_failed",
            )
            return

        record_event_published(payload["event"])
        logger.debug(
            "Published lifecycle event",
            event=payload["event"],
            application_id=payload["application_id"],
            event_type="lifecycle_event_published",
        )

    def build_event_payload(
        self,
        transition: str,
        application: Application,
        previous_status: Optional[str] = None,
        **extra,
    ) -> dict:
        payload = {
            "event": f"application.{transition}",
            "version": self.SCHEMA_VERSION,
            "application_id": application.id,
            "post_id": application.post_id,
            "candidate_id": application.candidate_id,
            "candidate_role": application.candidate_role,
            "status": application.status,
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "correlation_id": get_correlation_id(),
        }

        if previous_status:
            payload["previous_status"] = previous_status

        payload.update({key: value for key, value in extra.items() if value is not None})
        return payload
