"""
Request and response schemas for application lifecycle endpoints.

Request bodies accept both snake_case and the camelCase keys sent by the
marketplace front ends (``applicationId``, ``withdrawalNote``...).
"""
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

__all__ = [
    "ApplyRequest",
    "StatusUpdateRequest",
    "WithdrawalRequestBody",
    "WithdrawalDecisionRequest",
    "WithdrawalDeclineRequest",
    "WithdrawalApprovalRequest",
    "ApplicationResponse",
    "StatusUpdateResponse",
    "CandidateApplicationsResponse",
    "ApplicationListResponse",
    "DeclinedApplicationListResponse",
    "WithdrawalRequestItem",
    "WithdrawalRequestListResponse",
    "NotificationResponse",
    "NotificationListResponse",
]


def _id_field(name: str, camel: str, description: str):
    return Field(..., min_length=1, validation_alias=AliasChoices(name, camel), description=description)


class ApplyRequest(BaseModel):
    post_id: str = _id_field("post_id", "postId", "Post ObjectId or post code such as P-010125-00")


class StatusUpdateRequest(BaseModel):
    application_id: str = _id_field("application_id", "applicationId", "Application to update")
    status: str = Field(..., description="pending, approved, declined, accepted or rejected")


class WithdrawalRequestBody(BaseModel):
    application_id: str = _id_field("application_id", "applicationId", "Application to withdraw")
    withdrawal_note: str | None = Field(
        None,
        validation_alias=AliasChoices("withdrawal_note", "withdrawalNote"),
        description="Optional reason shown to administrators; limited by WITHDRAWAL_NOTE_MAX_LENGTH",
    )


class WithdrawalDecisionRequest(BaseModel):
    application_id: str = _id_field("application_id", "applicationId", "Application with a pending request")


class WithdrawalDeclineRequest(WithdrawalDecisionRequest):
    admin_note: str | None = Field(
        None,
        validation_alias=AliasChoices("admin_note", "adminNote"),
        description="Shown to the candidate; limited by WITHDRAWAL_NOTE_MAX_LENGTH",
    )


class WithdrawalApprovalRequest(WithdrawalDeclineRequest):
    action: str = Field(..., description='"approve" or "reject"')


class ApplicationResponse(BaseModel):
    success: bool = True
    message: str | None = None
    application: dict[str, Any]


class StatusUpdateResponse(BaseModel):
    success: bool = True
    application_id: str
    status: str
    auto_declined_count: int = 0
    application: dict[str, Any]


class CandidateApplicationsResponse(BaseModel):
    success: bool = True
    applications: list[dict[str, Any]]
    applied_post_ids: list[str]


class ApplicationListResponse(BaseModel):
    success: bool = True
    count: int
    applications: list[dict[str, Any]]


class DeclinedApplicationListResponse(BaseModel):
    success: bool = True
    count: int
    declined_applications: list[dict[str, Any]]


class WithdrawalRequestItem(BaseModel):
    application: dict[str, Any]
    post: dict[str, Any] | None = None


class WithdrawalRequestListResponse(BaseModel):
    success: bool = True
    count: int
    requests: list[WithdrawalRequestItem]


class NotificationResponse(BaseModel):
    success: bool = True
    notification: dict[str, Any]


class NotificationListResponse(BaseModel):
    success: bool = True
    count: int
    notifications: list[dict[str, Any]]
