"""
Authentication and role checks for lifecycle endpoints.

Tokens are issued by the marketplace's login service; this module only verifies
them and maps the claims onto a ``Principal``.
"""

from enum import Enum

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError

from app_lifecycle.core.exceptions import (
    AuthenticationError,
    InsufficientPermissionsError,
    InvalidTokenError,
    TokenExpiredError,
)
from app_lifecycle.core.security import verify_jwt_token
from app_lifecycle.log.logging import logger
from app_lifecycle.models.candidate import BaseCandidate, build_candidate

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


class Role(str, Enum):
    TEACHER = "teacher"
    FREELANCER = "freelancer"
    GUARDIAN = "guardian"
    CLIENT = "client"
    ADMIN = "admin"


CANDIDATE_ROLES = {Role.TEACHER, Role.FREELANCER}
POST_MANAGER_ROLES = {Role.ADMIN, Role.GUARDIAN, Role.CLIENT}


class Principal:
    """Represents an authenticated caller."""

    def __init__(
        self,
        user_id: str,
        role: Role,
        name: str | None = None,
        custom_id: str | None = None,
        email: str | None = None,
    ):
        self.user_id = user_id
        self.role = role
        self.name = name
        self.custom_id = custom_id
        self.email = email

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def as_candidate(self) -> BaseCandidate:
        return build_candidate(
            self.role.value,
            self.user_id,
            name=self.name,
            custom_id=self.custom_id,
            email=self.email,
        )

    def __repr__(self) -> str:
        return f"Principal(user_id={self.user_id!r}, role={self.role.value!r})"


async def get_current_principal(token: str | None = Depends(oauth2_scheme)) -> Principal:
    """
    Extract and validate the caller from the bearer token.

    The token payload should contain:
    - id: User ID
    - role: One of 'teacher', 'freelancer', 'guardian', 'client', 'admin'
    - name, custom_id, email: optional display fields
    """
    if not token:
        raise AuthenticationError()

    try:
        payload = verify_jwt_token(token)
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise InvalidTokenError()

    user_id = payload.get("id")
    if user_id is None:
        raise InvalidTokenError()

    try:
        role = Role(payload.get("role"))
    except ValueError:
        logger.warning("Token carries an unknown role", event_type="auth_unknown_role", user_id=str(user_id))
        raise InvalidTokenError()

    return Principal(
        user_id=str(user_id),
        role=role,
        name=payload.get("name"),
        custom_id=payload.get("custom_id"),
        email=payload.get("email"),
    )


def require_candidate(principal: Principal = Depends(get_current_principal)) -> BaseCandidate:
    """Dependency that requires a teacher or freelancer and returns them as a candidate."""
    if principal.role not in CANDIDATE_ROLES:
        raise InsufficientPermissionsError("teacher or freelancer")
    return principal.as_candidate()


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Dependency that requires admin access."""
    if not principal.is_admin:
        logger.warning(
            "Non-admin user attempted admin access",
            event_type="admin_access_denied",
            user_id=principal.user_id,
        )
        raise InsufficientPermissionsError("admin")
    return principal


def require_post_manager(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Dependency for callers allowed to decide on a post's applications."""
    if principal.role not in POST_MANAGER_ROLES:
        raise InsufficientPermissionsError("admin, guardian or client")
    return principal
