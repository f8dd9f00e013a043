"""Tests for token verification, roles and the candidate union."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from app_lifecycle.core.auth import (
    Principal,
    Role,
    get_current_principal,
    require_admin,
    require_candidate,
    require_post_manager,
)
from app_lifecycle.core.exceptions import (
    AuthenticationError,
    InsufficientPermissionsError,
    InvalidTokenError,
    TokenExpiredError,
)
from app_lifecycle.core.security import create_access_token
from app_lifecycle.models.candidate import FreelancerCandidate, TeacherCandidate, build_candidate


async def test_principal_from_token():
    token = create_access_token({"id": "u1", "role": "freelancer", "name": "Mira", "custom_id": "F001"})

    principal = await get_current_principal(token)

    assert principal.user_id == "u1"
    assert principal.role == Role.FREELANCER
    assert principal.custom_id == "F001"


async def test_missing_token():
    with pytest.raises(AuthenticationError):
        await get_current_principal(None)


async def test_expired_token():
    token = create_access_token({"id": "u1", "role": "teacher"}, expires_minutes=-1)

    with pytest.raises(TokenExpiredError):
        await get_current_principal(token)


@pytest.mark.parametrize(
    "claims",
    [{"role": "teacher"}, {"id": "u1", "role": "superuser"}],
)
async def test_invalid_claims(claims):
    with pytest.raises(InvalidTokenError):
        await get_current_principal(create_access_token(claims))


def test_require_candidate_returns_variant():
    candidate = require_candidate(Principal("u1", Role.TEACHER, name="Asha", custom_id="T001"))

    assert isinstance(candidate, TeacherCandidate)
    assert candidate.identify() == "u1"
    assert candidate.public_id() == "T001"


def test_require_candidate_rejects_guardian():
    with pytest.raises(InsufficientPermissionsError):
        require_candidate(Principal("u1", Role.GUARDIAN))


def test_require_admin():
    admin = Principal("a1", Role.ADMIN)
    assert require_admin(admin) is admin

    with pytest.raises(InsufficientPermissionsError) as exc_info:
        require_admin(Principal("c1", Role.CLIENT))
    assert exc_info.value.status_code == 403


def test_require_post_manager():
    for role in (Role.ADMIN, Role.GUARDIAN, Role.CLIENT):
        require_post_manager(Principal("x", role))

    with pytest.raises(InsufficientPermissionsError):
        require_post_manager(Principal("x", Role.FREELANCER))


class TestCandidateUnion:
    def test_build_candidate_picks_variant(self):
        assert isinstance(build_candidate("teacher", "t1"), TeacherCandidate)
        assert isinstance(build_candidate("freelancer", "f1"), FreelancerCandidate)

    def test_display_name_fallbacks(self):
        assert build_candidate("teacher", "t1").display_name() == "Unknown Teacher"
        assert build_candidate("freelancer", "f1").display_name() == "Unknown Freelancer"
        assert build_candidate("teacher", "t1", name="Asha").display_name() == "Asha"

    def test_public_id_falls_back_to_id(self):
        assert build_candidate("teacher", "t1").public_id() == "t1"

    def test_non_candidate_role(self):
        with pytest.raises(PydanticValidationError):
            build_candidate("guardian", "g1")
