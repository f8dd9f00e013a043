"""
Admin API router.

Provides endpoints for:
- Reviewing pending withdrawal requests
- Approving or declining a withdrawal request
- Reading and acknowledging admin notifications
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app_lifecycle.core.auth import Principal, require_admin
from app_lifecycle.log.logging import logger
from app_lifecycle.models.notification import NotificationStatus
from app_lifecycle.routers.dependencies import get_lifecycle_service, get_notification_sink
from app_lifecycle.schemas.applications import (
    ApplicationResponse,
    NotificationListResponse,
    NotificationResponse,
    WithdrawalApprovalRequest,
    WithdrawalDecisionRequest,
    WithdrawalDeclineRequest,
    WithdrawalRequestItem,
    WithdrawalRequestListResponse,
)
from app_lifecycle.services.lifecycle_service import ApplicationLifecycleService
from app_lifecycle.services.notification_sink import NotificationSink

router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# Withdrawal requests
# =============================================================================


@router.get(
    "/withdrawal-requests",
    summary="List pending withdrawal requests",
    description="All applications awaiting a withdrawal decision, most recent request first.",
    response_model=WithdrawalRequestListResponse,
)
async def list_withdrawal_requests(
    admin: Principal = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    requests = await service.list_withdrawal_requests()
    return WithdrawalRequestListResponse(
        count=len(requests),
        requests=[
            WithdrawalRequestItem(
                application=request.application.to_response(),
                post=request.post.model_dump(mode="json", exclude_none=True) if request.post else None,
            )
            for request in requests
        ],
    )


@router.post(
    "/withdrawal-requests/approve",
    summary="Approve a withdrawal request",
    response_model=ApplicationResponse,
)
async def approve_withdrawal_request(
    body: WithdrawalDecisionRequest,
    admin: Principal = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    application = await service.approve_withdrawal(body.application_id, admin.user_id)
    return ApplicationResponse(
        message="Withdrawal request approved successfully",
        application=application.to_response(),
    )


@router.post(
    "/withdrawal-requests/decline",
    summary="Decline a withdrawal request",
    description="Restores the status the application had before the request.",
    response_model=ApplicationResponse,
)
async def decline_withdrawal_request(
    body: WithdrawalDeclineRequest,
    admin: Principal = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    application = await service.decline_withdrawal(body.application_id, admin.user_id, body.admin_note)
    return ApplicationResponse(
        message=f"Withdrawal request rejected. Application restored to {application.status} status.",
        application=application.to_response(),
    )


@router.post(
    "/applications/withdrawal-approval",
    summary="Approve or reject a withdrawal request",
    description='Single endpoint taking action "approve" or "reject".',
    response_model=ApplicationResponse,
)
async def decide_withdrawal_request(
    body: WithdrawalApprovalRequest,
    admin: Principal = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    application = await service.decide_withdrawal(
        body.application_id, body.action, admin.user_id, body.admin_note
    )
    if body.action == "approve":
        message = "Withdrawal request approved successfully"
    else:
        message = f"Withdrawal request rejected. Application restored to {application.status} status."
    return ApplicationResponse(message=message, application=application.to_response())


# =============================================================================
# Notifications
# =============================================================================


@router.get(
    "/notifications",
    summary="List admin notifications",
    response_model=NotificationListResponse,
)
async def list_notifications(
    admin: Principal = Depends(require_admin),
    sink: NotificationSink = Depends(get_notification_sink),
    status: Annotated[
        NotificationStatus | None,
        Query(description="Filter by status: pending, approved, declined"),
    ] = None,
    unread: Annotated[
        bool | None,
        Query(description="true for unread only, false for read only"),
    ] = None,
):
    notifications = await sink.list_notifications(status=status, unread=unread)
    return NotificationListResponse(
        count=len(notifications),
        notifications=[notification.to_response() for notification in notifications],
    )


@router.post(
    "/notifications/{notification_id}/read",
    summary="Mark a notification as read",
    response_model=NotificationResponse,
)
async def mark_notification_read(
    notification_id: str,
    admin: Principal = Depends(require_admin),
    sink: NotificationSink = Depends(get_notification_sink),
):
    notification = await sink.mark_read(notification_id)
    logger.info(
        "Admin notification read",
        event_type="admin_notification_read",
        notification_id=notification_id,
        admin_id=admin.user_id,
    )
    return NotificationResponse(notification=notification.to_response())
