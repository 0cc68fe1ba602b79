"""Email preference endpoints used by the preferences page."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.auth.dependencies import get_current_user
from buddy.database import get_session
from buddy.db.models import Profile
from buddy.planner.preferences import DigestPreferences, get_preferences, save_preferences
from buddy.planner.schemas import EmailPreferencesBody

router = APIRouter(prefix="/api/v1/email-preferences", tags=["Planner"])


@router.get("", response_model=EmailPreferencesBody)
async def read_preferences(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Current digest preferences (defaults if never saved)."""
    prefs = await get_preferences(db, user.id)
    return EmailPreferencesBody(**asdict(prefs))


@router.put("", response_model=EmailPreferencesBody)
async def update_preferences(
    body: EmailPreferencesBody,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Replace digest preferences."""
    prefs = await save_preferences(db, user.id, DigestPreferences(**body.model_dump()))
    return EmailPreferencesBody(**asdict(prefs))
