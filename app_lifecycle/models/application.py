"""
Application models for the post application lifecycle.

An application is one candidate's request to fill one post. Active applications
live in the ``applications`` collection; applications declined by the approval
cascade are archived in ``declined_applications``.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, Field

ObjectIdStr = Annotated[str, BeforeValidator(lambda value: value if value is None else str(value))]


class ApplicationStatus(str, Enum):
    """
    Enum representing the possible states of an application.

    Lifecycle: pending -> approved | declined, and
    pending/approved -> withdrawal-requested -> withdrawn | (previous status)
    """
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    WITHDRAWAL_REQUESTED = "withdrawal-requested"
    WITHDRAWN = "withdrawn"
    COMPLETED = "completed"
    REJECTED = "rejected"
    ACCEPTED = "accepted"


TERMINAL_STATUSES = frozenset(
    {
        ApplicationStatus.DECLINED,
        ApplicationStatus.WITHDRAWN,
        ApplicationStatus.COMPLETED,
        ApplicationStatus.REJECTED,
    }
)


class Application(BaseModel):
    """
    Model representing an application document in MongoDB.
    """
    id: ObjectIdStr | None = Field(None, alias="_id", description="MongoDB document ID")
    post_id: ObjectIdStr = Field(..., description="ID of the post applied to")
    candidate_id: str = Field(..., description="ID of the applying teacher or freelancer")
    candidate_role: str = Field(..., description="teacher or freelancer")
    candidate_name: str | None = None
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING)
    applied_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime | None = None

    # Decline metadata
    decline_reason: str | None = None
    auto_declined: bool = False
    declined_at: datetime | None = None
    declined_by: str | None = None

    # Decision metadata
    approved_at: datetime | None = None
    approved_by: str | None = None
    accepted_at: datetime | None = None
    accepted_by: str | None = None
    rejected_at: datetime | None = None
    rejected_by: str | None = None

    # Withdrawal metadata
    withdrawal_requested_at: datetime | None = None
    withdrawal_requested_by: str | None = None
    withdrawal_note: str | None = None
    status_before_withdrawal: ApplicationStatus | None = Field(
        None, description="Status to restore when a withdrawal request is rejected"
    )
    withdrawal_approved_at: datetime | None = None
    withdrawal_approved_by: str | None = None
    withdrawal_rejected_at: datetime | None = None
    withdrawal_rejected_by: str | None = None

    class Config:
        from_attributes = True
        populate_by_name = True
        use_enum_values = True

    @classmethod
    def from_document(cls, document: dict) -> "Application":
        return cls.model_validate(document)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class DeclinedApplication(BaseModel):
    """
    Archival copy of an application removed from the active collection.
    """
    id: ObjectIdStr | None = Field(None, alias="_id")
    original_application_id: ObjectIdStr
    post_id: ObjectIdStr
    candidate_id: str
    candidate_role: str
    candidate_name: str | None = None
    status: ApplicationStatus = ApplicationStatus.DECLINED
    applied_at: datetime
    declined_at: datetime
    decline_reason: str
    auto_declined: bool = False
    declined_by: str | None = None
    created_at: datetime | None = None
    withdrawal_requested_at: datetime | None = None
    withdrawal_requested_by: str | None = None
    withdrawal_approved_at: datetime | None = None
    withdrawal_approved_by: str | None = None
    withdrawal_rejected_at: datetime | None = None
    withdrawal_rejected_by: str | None = None
    withdrawal_note: str | None = None

    class Config:
        from_attributes = True
        populate_by_name = True
        use_enum_values = True

    @classmethod
    def from_document(cls, document: dict) -> "DeclinedApplication":
        return cls.model_validate(document)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
