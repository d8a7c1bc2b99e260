"""
HS256 JWT verification.

Tokens are issued by the social-login gateway; this service only verifies
them. `create_access_token` mirrors the gateway's claims so tooling and
tests can mint tokens with the shared secret.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from streakup.config import get_settings


def create_access_token(user_id: int, provider: str = "kakao", expires_minutes: int | None = None) -> str:
    """
    Create an access token for a user.

    Args:
        user_id: The user's database ID.
        provider: Social login provider the session came from.
        expires_minutes: Lifetime override; defaults to the configured lifetime.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    if expires_minutes is None:
        expires_minutes = settings.jwt_access_token_expire_minutes
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "provider": provider,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, not an
            access token, or has no numeric subject.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != "access":
        msg = f"Expected token type 'access', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)
    if not str(payload.get("sub", "")).isdigit():
        msg = "Token subject is not a user id"
        raise jwt.InvalidTokenError(msg)

    return payload
