"""
Administrator-facing notifications raised by candidate actions.
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app_lifecycle.models.application import ObjectIdStr


class NotificationType(str, Enum):
    WITHDRAWAL_REQUEST = "withdrawal-request"
    WITHDRAWAL_APPROVED = "withdrawal-approved"
    WITHDRAWAL_DECLINED = "withdrawal-declined"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class AdminNotification(BaseModel):
    """
    Model representing a document in the ``admin_notifications`` collection.
    """
    id: ObjectIdStr | None = Field(None, alias="_id")
    type: NotificationType
    application_id: ObjectIdStr
    candidate_id: str
    candidate_role: str
    candidate_name: str
    candidate_custom_id: str | None = None
    post_id: ObjectIdStr
    withdrawal_note: str | None = None
    status: NotificationStatus = NotificationStatus.PENDING
    requested_at: datetime
    processed_at: datetime | None = None
    processed_by: str | None = None
    admin_note: str | None = None
    read: bool = False
    read_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True
        populate_by_name = True
        use_enum_values = True

    @classmethod
    def from_document(cls, document: dict) -> "AdminNotification":
        return cls.model_validate(document)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
