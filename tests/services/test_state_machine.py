"""Tests for the application state machine."""

import pytest

from app_lifecycle.core.exceptions import (
    ApplicationAlreadyWithdrawnError,
    CompletedApplicationWithdrawalError,
    InvalidStateForWithdrawalError,
    InvalidTransitionError,
    NoPendingWithdrawalError,
    WithdrawalAlreadyRequestedError,
)
from app_lifecycle.models.application import ApplicationStatus
from app_lifecycle.services.state_machine import (
    ALLOWED_SOURCES,
    Transition,
    can_transition,
    ensure_transition,
    restored_status,
)


@pytest.mark.parametrize(
    "transition, status",
    [
        (Transition.APPROVE, "pending"),
        (Transition.DECLINE, "pending"),
        (Transition.ACCEPT, "approved"),
        (Transition.REJECT, "approved"),
        (Transition.REOPEN, "declined"),
        (Transition.REQUEST_WITHDRAWAL, "approved"),
        (Transition.APPROVE_WITHDRAWAL, "withdrawal-requested"),
        (Transition.DECLINE_WITHDRAWAL, "withdrawal-requested"),
    ],
)
def test_allowed_transitions(transition, status):
    assert can_transition(transition, status)
    ensure_transition(transition, status)


def test_approve_only_from_pending():
    for status in ApplicationStatus:
        assert can_transition(Transition.APPROVE, status) == (status == ApplicationStatus.PENDING)


def test_invalid_transition_names_both_states():
    with pytest.raises(InvalidTransitionError) as exc_info:
        ensure_transition(Transition.APPROVE, "withdrawn")

    assert exc_info.value.current_status == "withdrawn"
    assert exc_info.value.target_status == "approved"
    assert exc_info.value.status_code == 409


@pytest.mark.parametrize(
    "status, error",
    [
        ("withdrawn", ApplicationAlreadyWithdrawnError),
        ("withdrawal-requested", WithdrawalAlreadyRequestedError),
        ("completed", CompletedApplicationWithdrawalError),
    ],
)
def test_withdrawal_request_errors(status, error):
    with pytest.raises(error):
        ensure_transition(Transition.REQUEST_WITHDRAWAL, status)


def test_withdrawal_request_from_rejected():
    with pytest.raises(InvalidStateForWithdrawalError) as exc_info:
        ensure_transition(Transition.REQUEST_WITHDRAWAL, "rejected")
    assert "rejected" in exc_info.value.message


@pytest.mark.parametrize("transition", [Transition.APPROVE_WITHDRAWAL, Transition.DECLINE_WITHDRAWAL])
def test_admin_decision_without_request(transition):
    with pytest.raises(NoPendingWithdrawalError) as exc_info:
        ensure_transition(transition, "approved")
    assert exc_info.value.current_status == "approved"


def test_withdrawn_and_completed_are_final():
    for status in (ApplicationStatus.WITHDRAWN, ApplicationStatus.COMPLETED):
        assert not any(status in sources for sources in ALLOWED_SOURCES.values())


def test_restored_status():
    assert restored_status("approved") == ApplicationStatus.APPROVED
    assert restored_status(ApplicationStatus.ACCEPTED) == ApplicationStatus.ACCEPTED
    assert restored_status(None) == ApplicationStatus.PENDING


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        can_transition(Transition.APPROVE, "archived")
