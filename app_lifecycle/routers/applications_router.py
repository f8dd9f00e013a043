"""
Application router for candidates and post owners.

This module provides endpoints for:
- Applying to a post and listing one's own applications
- Requesting withdrawal of an application
- Approving, declining and otherwise deciding on a post's applications
- Reading the archive of declined applications
"""
from fastapi import APIRouter, Depends, Query

from app_lifecycle.core.auth import (
    CANDIDATE_ROLES,
    Principal,
    get_current_principal,
    require_candidate,
    require_post_manager,
)
from app_lifecycle.models.candidate import BaseCandidate
from app_lifecycle.routers.dependencies import get_lifecycle_service
from app_lifecycle.schemas.applications import (
    ApplicationListResponse,
    ApplicationResponse,
    ApplyRequest,
    CandidateApplicationsResponse,
    DeclinedApplicationListResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    WithdrawalRequestBody,
)
from app_lifecycle.services.lifecycle_service import ApplicationLifecycleService

router = APIRouter(tags=["applications"])


# -----------------------------------------------------------------------------
# Candidate endpoints
# -----------------------------------------------------------------------------

@router.post(
    "/applications/apply",
    summary="Apply to a post",
    description="Creates a pending application of the calling teacher or freelancer.",
    response_model=ApplicationResponse,
    status_code=201,
)
async def apply_to_post(
    body: ApplyRequest,
    candidate: BaseCandidate = Depends(require_candidate),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    application = await service.apply(body.post_id, candidate)
    return ApplicationResponse(
        message="Application submitted successfully",
        application=application.to_response(),
    )


@router.get(
    "/applications/mine",
    summary="List my applications",
    response_model=CandidateApplicationsResponse,
)
async def list_my_applications(
    candidate: BaseCandidate = Depends(require_candidate),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    result = await service.list_candidate_applications(candidate)
    return CandidateApplicationsResponse(
        applications=[application.to_response() for application in result.applications],
        applied_post_ids=result.applied_post_ids,
    )


@router.post(
    "/applications/request-withdrawal",
    summary="Request withdrawal",
    description=(
        "Moves a pending or approved application to withdrawal-requested and notifies "
        "administrators, who approve or decline the request."
    ),
    response_model=ApplicationResponse,
)
async def request_withdrawal(
    body: WithdrawalRequestBody,
    candidate: BaseCandidate = Depends(require_candidate),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    application = await service.request_withdrawal(body.application_id, candidate, body.withdrawal_note)
    return ApplicationResponse(
        message="Withdrawal request submitted successfully. Waiting for admin approval.",
        application=application.to_response(),
    )


# -----------------------------------------------------------------------------
# Post owner endpoints
# -----------------------------------------------------------------------------

@router.patch(
    "/applications/status",
    summary="Update application status",
    description=(
        "Approving an application automatically declines every other pending "
        "application for the same post and archives them."
    ),
    response_model=StatusUpdateResponse,
)
async def update_application_status(
    body: StatusUpdateRequest,
    principal: Principal = Depends(require_post_manager),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    result = await service.update_status(body.application_id, body.status, principal.user_id)
    return StatusUpdateResponse(
        application_id=result.application.id,
        status=result.application.status,
        auto_declined_count=result.auto_declined_count,
        application=result.application.to_response(),
    )


@router.get(
    "/posts/{post_ref}/applications",
    summary="List a post's applications",
    description="Accepts the post ObjectId or its code (e.g. P-010125-00).",
    response_model=ApplicationListResponse,
)
async def list_post_applications(
    post_ref: str,
    principal: Principal = Depends(require_post_manager),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    applications = await service.list_post_applications(post_ref)
    return ApplicationListResponse(
        count=len(applications),
        applications=[application.to_response() for application in applications],
    )


@router.get(
    "/applications/declined",
    summary="List declined applications",
    description=(
        "Candidates see their own archived applications. Post owners and admins may "
        "filter by post."
    ),
    response_model=DeclinedApplicationListResponse,
)
async def list_declined_applications(
    post_ref: str | None = Query(None, description="Post ObjectId or code"),
    principal: Principal = Depends(get_current_principal),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    if principal.role in CANDIDATE_ROLES:
        declined = await service.list_declined_applications(candidate_id=principal.user_id, post_ref=post_ref)
    else:
        require_post_manager(principal)
        declined = await service.list_declined_applications(post_ref=post_ref)

    return DeclinedApplicationListResponse(
        count=len(declined),
        declined_applications=[record.to_response() for record in declined],
    )
