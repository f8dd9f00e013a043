"""
Allowed application status transitions.

    pending --approve--> approved            (siblings: pending -> archived as declined)
    pending --decline--> declined
    pending/approved/accepted --request-withdrawal--> withdrawal-requested
    withdrawal-requested --approve-withdrawal--> withdrawn
    withdrawal-requested --decline-withdrawal--> status before the request
    approved --accept--> accepted
    pending/approved --reject--> rejected
    declined/rejected --reopen--> pending
"""
from enum import Enum

from app_lifecycle.core.exceptions import (
    ApplicationAlreadyWithdrawnError,
    CompletedApplicationWithdrawalError,
    InvalidStateForWithdrawalError,
    InvalidTransitionError,
    NoPendingWithdrawalError,
    WithdrawalAlreadyRequestedError,
)
from app_lifecycle.models.application import ApplicationStatus


class Transition(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"
    ACCEPT = "accept"
    REJECT = "reject"
    REOPEN = "reopen"
    REQUEST_WITHDRAWAL = "request-withdrawal"
    APPROVE_WITHDRAWAL = "approve-withdrawal"
    DECLINE_WITHDRAWAL = "decline-withdrawal"


S = ApplicationStatus

ALLOWED_SOURCES: dict[Transition, frozenset[ApplicationStatus]] = {
    Transition.APPROVE: frozenset({S.PENDING}),
    Transition.DECLINE: frozenset({S.PENDING}),
    Transition.ACCEPT: frozenset({S.APPROVED}),
    Transition.REJECT: frozenset({S.PENDING, S.APPROVED}),
    Transition.REOPEN: frozenset({S.DECLINED, S.REJECTED}),
    Transition.REQUEST_WITHDRAWAL: frozenset({S.PENDING, S.APPROVED, S.ACCEPTED}),
    Transition.APPROVE_WITHDRAWAL: frozenset({S.WITHDRAWAL_REQUESTED}),
    Transition.DECLINE_WITHDRAWAL: frozenset({S.WITHDRAWAL_REQUESTED}),
}

TARGETS: dict[Transition, ApplicationStatus] = {
    Transition.APPROVE: S.APPROVED,
    Transition.DECLINE: S.DECLINED,
    Transition.ACCEPT: S.ACCEPTED,
    Transition.REJECT: S.REJECTED,
    Transition.REOPEN: S.PENDING,
    Transition.REQUEST_WITHDRAWAL: S.WITHDRAWAL_REQUESTED,
    Transition.APPROVE_WITHDRAWAL: S.WITHDRAWN,
    # Decline-withdrawal restores the recorded prior status instead
}

# Status a caller may set through the generic status endpoint, and what it means
STATUS_UPDATES: dict[ApplicationStatus, Transition] = {
    S.PENDING: Transition.REOPEN,
    S.APPROVED: Transition.APPROVE,
    S.DECLINED: Transition.DECLINE,
    S.ACCEPTED: Transition.ACCEPT,
    S.REJECTED: Transition.REJECT,
}

_WITHDRAWAL_ERRORS = {
    S.WITHDRAWN: ApplicationAlreadyWithdrawnError,
    S.WITHDRAWAL_REQUESTED: WithdrawalAlreadyRequestedError,
    S.COMPLETED: CompletedApplicationWithdrawalError,
}


def can_transition(transition: Transition, current: ApplicationStatus | str) -> bool:
    return ApplicationStatus(current) in ALLOWED_SOURCES[transition]


def ensure_transition(transition: Transition, current: ApplicationStatus | str) -> None:
    """
    Raise the error matching ``transition`` if it is not allowed from ``current``.

    Withdrawal requests and admin withdrawal decisions get their own error types so
    callers can tell the user exactly why nothing happened.
    """
    current = ApplicationStatus(current)
    if current in ALLOWED_SOURCES[transition]:
        return

    if transition == Transition.REQUEST_WITHDRAWAL:
        error_class = _WITHDRAWAL_ERRORS.get(current)
        if error_class is not None:
            raise error_class()
        raise InvalidStateForWithdrawalError(f"Cannot withdraw a {current.value} application")

    if transition in (Transition.APPROVE_WITHDRAWAL, Transition.DECLINE_WITHDRAWAL):
        raise NoPendingWithdrawalError(current.value)

    raise InvalidTransitionError(current.value, TARGETS[transition].value)


def restored_status(status_before_withdrawal: ApplicationStatus | str | None) -> ApplicationStatus:
    """Status an application returns to when its withdrawal request is declined."""
    if status_before_withdrawal is None:
        # Requests recorded before the prior status was tracked
        return S.PENDING
    return ApplicationStatus(status_before_withdrawal)
