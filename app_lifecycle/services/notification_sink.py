"""
Administrator notifications raised by the withdrawal workflow.
"""
from abc import ABC, abstractmethod
from datetime import datetime

from bson import ObjectId
from bson.errors import InvalidId

from app_lifecycle.core.database import ADMIN_NOTIFICATIONS
from app_lifecycle.core.exceptions import InvalidIdentifierError, NotificationNotFoundError
from app_lifecycle.core.store import DocumentStore
from app_lifecycle.models.notification import AdminNotification, NotificationStatus


class NotificationSink(ABC):
    """Where the lifecycle service records notifications for administrators."""

    @abstractmethod
    async def create_notification(self, notification: AdminNotification) -> AdminNotification:
        pass

    @abstractmethod
    async def update_notification(self, filter: dict, changes: dict) -> int:
        """Apply ``changes`` to matching notifications. Returns the number matched."""
        pass

    @abstractmethod
    async def list_notifications(
        self, status: NotificationStatus | None = None, unread: bool | None = None
    ) -> list[AdminNotification]:
        pass

    @abstractmethod
    async def mark_read(self, notification_id: str) -> AdminNotification:
        pass


class StoreNotificationSink(NotificationSink):
    """
    Keeps notifications in the ``admin_notifications`` collection of the same store
    as the applications, so they take part in the same transactions.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_notification(self, notification: AdminNotification) -> AdminNotification:
        document = notification.model_dump(by_alias=True, exclude_none=True)
        document.pop("_id", None)
        document["application_id"] = ObjectId(notification.application_id)
        document["post_id"] = ObjectId(notification.post_id)
        created = await self.store.insert_one(ADMIN_NOTIFICATIONS, document)
        return AdminNotification.from_document(created)

    async def update_notification(self, filter: dict, changes: dict) -> int:
        return await self.store.update_many(ADMIN_NOTIFICATIONS, filter, {"$set": changes})

    async def list_notifications(
        self, status: NotificationStatus | None = None, unread: bool | None = None
    ) -> list[AdminNotification]:
        query: dict = {}
        if status is not None:
            query["status"] = NotificationStatus(status).value
        if unread is not None:
            query["read"] = not unread
        documents = await self.store.find(ADMIN_NOTIFICATIONS, query, sort=[("created_at", -1)])
        return [AdminNotification.from_document(document) for document in documents]

    async def mark_read(self, notification_id: str) -> AdminNotification:
        try:
            object_id = ObjectId(notification_id)
        except (InvalidId, TypeError):
            raise InvalidIdentifierError("notification_id", notification_id)

        matched = await self.store.update_one(
            ADMIN_NOTIFICATIONS,
            {"_id": object_id},
            {"$set": {"read": True, "read_at": datetime.utcnow()}},
        )
        if not matched:
            raise NotificationNotFoundError(notification_id)
        document = await self.store.find_one(ADMIN_NOTIFICATIONS, {"_id": object_id})
        return AdminNotification.from_document(document)
