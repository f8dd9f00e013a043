from datetime import datetime, timedelta

from jose import jwt

from app_lifecycle.core.config import settings


def verify_jwt_token(token: str) -> dict:
    """
    Verify JWT token.

    Args:
        token: Token to verify

    Returns:
        Decoded token data

    Raises:
        jose.ExpiredSignatureError: If the token has expired.
        jose.JWTError: If the token is malformed or the signature does not match.
    """
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])


def create_access_token(claims: dict, expires_minutes: int | None = None) -> str:
    """Issue a signed token carrying ``claims``; used by the CLI and tests."""
    payload = dict(claims)
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload["exp"] = datetime.utcnow() + timedelta(minutes=minutes)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)
