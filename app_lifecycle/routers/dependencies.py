"""
FastAPI dependency providers for the lifecycle service and its collaborators.

Tests swap the store and the event publisher through ``app.dependency_overrides``.
"""
from fastapi import Depends

from app_lifecycle.core.config import settings
from app_lifecycle.core.database import db_manager
from app_lifecycle.core.store import DocumentStore, MongoDocumentStore
from app_lifecycle.services.event_publisher import LifecycleEventPublisher
from app_lifecycle.services.lifecycle_service import ApplicationLifecycleService
from app_lifecycle.services.notification_sink import NotificationSink, StoreNotificationSink

_event_publisher: LifecycleEventPublisher | None = None


def get_document_store() -> DocumentStore:
    return MongoDocumentStore(db_manager.database)


def get_event_publisher() -> LifecycleEventPublisher:
    global _event_publisher
    if _event_publisher is None:
        _event_publisher = LifecycleEventPublisher(settings)
    return _event_publisher


async def close_event_publisher() -> None:
    global _event_publisher
    if _event_publisher is not None:
        await _event_publisher.close()
        _event_publisher = None


def get_notification_sink(store: DocumentStore = Depends(get_document_store)) -> NotificationSink:
    return StoreNotificationSink(store)


def get_lifecycle_service(
    store: DocumentStore = Depends(get_document_store),
    notifications: NotificationSink = Depends(get_notification_sink),
    events: LifecycleEventPublisher = Depends(get_event_publisher),
) -> ApplicationLifecycleService:
    return ApplicationLifecycleService(store, notifications, events, settings)
