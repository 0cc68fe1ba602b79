"""Verification of access tokens issued by the hosted auth backend.

Tokens are HS256-signed with the project's JWT secret; ``sub`` carries the
profile UUID.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from buddy.config import get_settings


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        jwt.InvalidTokenError: If the signature, expiry, audience, or subject is invalid.
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options={"require": ["exp", "sub"]},
    )
    try:
        uuid.UUID(str(payload["sub"]))
    except ValueError as e:
        msg = "Token subject is not a valid user id"
        raise jwt.InvalidTokenError(msg) from e
    return payload


def create_access_token(user_id: uuid.UUID, expires_minutes: int = 60) -> str:
    """Mint an access token. Used by tests and local tooling."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
        "role": "authenticated",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
