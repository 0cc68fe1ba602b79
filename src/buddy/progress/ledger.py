"""XP awards, level recomputation, and streak persistence."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.db.models import UserProgress
from buddy.progress.badges import evaluate_badges
from buddy.progress.levels import XP_PER_LEVEL
from buddy.progress.streaks import StreakState, StreakUpdate, advance_streak, milestone_for, utc_today
from buddy.redis_client import publish_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwardResult:
    """What an XP award changed."""

    user_id: uuid.UUID
    amount: int
    total_xp: int
    level: int
    leveled_up: bool
    streak: StreakUpdate
    badges: list[str] = field(default_factory=list)


async def get_or_create_progress(db: AsyncSession, user_id: uuid.UUID) -> UserProgress:
    """Get or create the progress row for a user (0 XP, level 1, no streak).

    The row is created with ``INSERT ... ON CONFLICT DO NOTHING`` so two
    first awards racing for the same user both end up on the one row.
    """
    insert = sqlite_insert if db.get_bind().dialect.name == "sqlite" else pg_insert
    stmt = insert(UserProgress).values(
        user_id=user_id,
        total_xp=0,
        level=1,
        current_streak=0,
        longest_streak=0,
        updated_at=datetime.now(timezone.utc),
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))

    result = await db.execute(
        select(UserProgress).where(UserProgress.user_id == user_id)
    )
    return result.scalar_one()


async def award_xp(
    db: AsyncSession,
    redis: object,
    user_id: uuid.UUID,
    amount: int,
    *,
    source: str = "activity",
    today: date | None = None,
) -> AwardResult:
    """Award XP to a user, then run the streak update and badge checks.

    XP and level are written in one ``UPDATE ... SET total_xp = total_xp + n``
    statement, so concurrent awards for the same user cannot lose an increment
    and the stored level always matches the stored XP.

    Raises ``ValueError`` for a non-positive amount. Store errors are rolled
    back and re-raised; the award is not queued or retried. Events go out
    only once the transaction has committed.
    """
    if amount <= 0:
        msg = f"XP amount must be positive, got {amount}"
        raise ValueError(msg)

    today = today or utc_today()
    now = datetime.now(timezone.utc)

    try:
        progress = await get_or_create_progress(db, user_id)
        old_level = progress.level

        result = await db.execute(
            update(UserProgress)
            .where(UserProgress.user_id == user_id)
            .values(
                total_xp=UserProgress.total_xp + amount,
                level=(UserProgress.total_xp + amount) // XP_PER_LEVEL + 1,
                updated_at=now,
            )
            .returning(UserProgress.total_xp, UserProgress.level)
            .execution_options(synchronize_session=False)
        )
        total_xp, level = result.one()
        await db.refresh(progress)

        streak = await _apply_streak(db, progress, today)
        badges = await evaluate_badges(db, progress)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("XP award failed for user %s (%d XP from %s)", user_id, amount, source)
        raise

    logger.info("Awarded %d XP to %s from %s (total=%d, level=%d)", amount, user_id, source, total_xp, level)

    if level > old_level:
        await publish_event(redis, "pubsub:level_up", {
            "user_id": str(user_id),
            "old_level": old_level,
            "new_level": level,
        })
    await _publish_milestone(redis, user_id, streak)
    for slug in badges:
        await publish_event(redis, "pubsub:badge_earned", {"user_id": str(user_id), "badge": slug})

    return AwardResult(
        user_id=user_id,
        amount=amount,
        total_xp=total_xp,
        level=level,
        leveled_up=level > old_level,
        streak=streak,
        badges=badges,
    )


async def update_streak(
    db: AsyncSession,
    redis: object,
    user_id: uuid.UUID,
    today: date | None = None,
) -> StreakUpdate:
    """Record activity for ``today`` (UTC) and persist the streak."""
    today = today or utc_today()
    try:
        progress = await get_or_create_progress(db, user_id)
        streak = await _apply_streak(db, progress, today)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await _publish_milestone(redis, user_id, streak)
    return streak


async def _apply_streak(db: AsyncSession, progress: UserProgress, today: date) -> StreakUpdate:
    state = StreakState(
        current_streak=progress.current_streak or 0,
        longest_streak=progress.longest_streak or 0,
        last_activity_date=progress.last_activity_date,
    )
    streak = advance_streak(state, today)

    progress.current_streak = streak.current_streak
    progress.longest_streak = streak.longest_streak
    progress.last_activity_date = streak.last_activity_date
    progress.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return streak


async def _publish_milestone(redis: object, user_id: uuid.UUID, streak: StreakUpdate) -> None:
    milestone = milestone_for(streak)
    if milestone is None:
        return
    logger.info("Streak milestone for %s: %s", user_id, milestone.title)
    await publish_event(redis, "pubsub:streak_update", {
        "user_id": str(user_id),
        "event": "streak_milestone",
        "streak_length": milestone.days,
        "title": milestone.title,
        "description": milestone.description,
    })
