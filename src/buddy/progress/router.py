"""Progress API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.auth.dependencies import get_current_user
from buddy.database import get_session
from buddy.db.models import Profile
from buddy.progress.badges import get_user_badges
from buddy.progress.ledger import get_or_create_progress
from buddy.progress.levels import level_progress
from buddy.progress.schemas import EarnedBadgeResponse, ProgressResponse, UserBadgesResponse

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


@router.get("", response_model=ProgressResponse)
async def get_progress(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """XP, level, and streak summary for the current user."""
    progress = await get_or_create_progress(db, user.id)
    await db.commit()

    info = level_progress(progress.total_xp)
    return ProgressResponse(
        total_xp=progress.total_xp,
        level=info["level"],
        xp_into_level=info["xp_into_level"],
        xp_for_level=info["xp_for_level"],
        next_level_xp=info["next_level_xp"],
        current_streak=progress.current_streak,
        longest_streak=progress.longest_streak,
        last_activity_date=progress.last_activity_date,
    )


@router.get("/badges", response_model=UserBadgesResponse)
async def list_my_badges(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Badges the current user has earned."""
    rows = await get_user_badges(db, user.id)
    earned = [
        EarnedBadgeResponse(
            slug=row.badge.slug,
            name=row.badge.name,
            description=row.badge.description,
            icon=row.badge.icon,
            earned_at=row.earned_at,
        )
        for row in rows
    ]
    return UserBadgesResponse(earned=earned, total_earned=len(earned))
