"""Badge catalogue and unlock evaluation."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.db.models import Badge, UserBadge, UserProgress

logger = logging.getLogger(__name__)

DEFAULT_BADGES: list[dict] = [
    {"slug": "first_steps", "name": "First Steps", "icon": "🌱",
     "description": "Earn your first 10 XP", "requirement_type": "total_xp", "requirement_value": 10},
    {"slug": "xp_500", "name": "Dedicated Learner", "icon": "📚",
     "description": "Earn 500 XP", "requirement_type": "total_xp", "requirement_value": 500},
    {"slug": "level_5", "name": "Rising Scholar", "icon": "⭐",
     "description": "Reach level 5", "requirement_type": "level", "requirement_value": 5},
    {"slug": "level_10", "name": "Honor Roll", "icon": "🏅",
     "description": "Reach level 10", "requirement_type": "level", "requirement_value": 10},
    {"slug": "streak_7", "name": "Week Warrior", "icon": "🔥",
     "description": "Study 7 days in a row", "requirement_type": "streak", "requirement_value": 7},
    {"slug": "streak_30", "name": "Unstoppable", "icon": "🏆",
     "description": "Study 30 days in a row", "requirement_type": "streak", "requirement_value": 30},
]


def meets_requirement(progress: UserProgress, requirement_type: str, requirement_value: int) -> bool:
    """Check a single badge requirement against a progress record."""
    if requirement_type == "total_xp":
        return progress.total_xp >= requirement_value
    if requirement_type == "level":
        return progress.level >= requirement_value
    if requirement_type == "streak":
        return progress.longest_streak >= requirement_value
    return False


async def seed_badges(db: AsyncSession) -> int:
    """Insert missing default badges. Idempotent; returns number inserted."""
    result = await db.execute(select(Badge.slug))
    existing = set(result.scalars())

    inserted = 0
    for entry in DEFAULT_BADGES:
        if entry["slug"] in existing:
            continue
        db.add(Badge(**entry))
        inserted += 1

    if inserted:
        await db.commit()
        logger.info("Seeded %d badges", inserted)
    return inserted


async def evaluate_badges(db: AsyncSession, progress: UserProgress) -> list[str]:
    """Award every badge the record now qualifies for. Returns new slugs.

    Flushes but does not commit or publish; the caller owns the transaction.
    """
    earned_result = await db.execute(
        select(UserBadge.badge_id).where(UserBadge.user_id == progress.user_id)
    )
    earned = set(earned_result.scalars())

    badges_result = await db.execute(select(Badge).order_by(Badge.id))
    awarded: list[str] = []
    now = datetime.now(timezone.utc)
    for badge in badges_result.scalars():
        if badge.id in earned:
            continue
        if not meets_requirement(progress, badge.requirement_type, badge.requirement_value):
            continue
        db.add(UserBadge(user_id=progress.user_id, badge_id=badge.id, earned_at=now))
        awarded.append(badge.slug)

    if awarded:
        await db.flush()
        logger.info("Badges earned by %s: %s", progress.user_id, ", ".join(awarded))
    return awarded


async def get_user_badges(db: AsyncSession, user_id: uuid.UUID) -> list[UserBadge]:
    """Earned badges for a user, oldest first."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at.asc(), UserBadge.id.asc())
    )
    return list(result.scalars().unique())
