"""FastAPI authentication dependencies."""

from __future__ import annotations

import uuid

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.auth.jwt import verify_token
from buddy.database import get_session
from buddy.db.models import Profile

_bearer = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    """Extract and verify the bearer JWT, return the caller's profile.

    Raises 401 when the token is invalid or the profile does not exist.
    """
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    profile = await db.get(Profile, uuid.UUID(str(payload["sub"])))
    if profile is None:
        raise HTTPException(status_code=401, detail="User not found")
    return profile
