"""Daily digest preferences, with defaults for users who never set any."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.config import get_settings
from buddy.db.models import EmailPreference

# Bucket key → preference flag
INCLUDE_FLAGS = {
    "overdue": "include_overdue",
    "today": "include_today",
    "this_week": "include_this_week",
    "upcoming": "include_upcoming",
}


@dataclass(frozen=True)
class DigestPreferences:
    """One user's digest settings. ``digest_hour`` is a UTC hour or None for any hour."""

    daily_digest_enabled: bool = True
    digest_hour: int | None = 8
    include_overdue: bool = True
    include_today: bool = True
    include_this_week: bool = True
    include_upcoming: bool = True

    def __post_init__(self) -> None:
        if self.digest_hour is not None and not 0 <= self.digest_hour <= 23:
            msg = f"digest_hour must be between 0 and 23, got {self.digest_hour}"
            raise ValueError(msg)

    @classmethod
    def default(cls) -> DigestPreferences:
        return cls(digest_hour=get_settings().digest_default_hour)

    @classmethod
    def from_row(cls, row: EmailPreference) -> DigestPreferences:
        return cls(
            daily_digest_enabled=row.daily_digest_enabled,
            digest_hour=row.digest_hour,
            include_overdue=row.include_overdue,
            include_today=row.include_today,
            include_this_week=row.include_this_week,
            include_upcoming=row.include_upcoming,
        )

    def includes(self, bucket: str) -> bool:
        return bool(getattr(self, INCLUDE_FLAGS[bucket]))

    def passes_gate(self, hour: int) -> bool:
        """Whether a digest should go out during this UTC hour."""
        if not self.daily_digest_enabled:
            return False
        return self.digest_hour is None or self.digest_hour == hour


async def get_preferences(db: AsyncSession, user_id: uuid.UUID) -> DigestPreferences:
    """A user's preferences, or the defaults when no row exists."""
    result = await db.execute(
        select(EmailPreference).where(EmailPreference.user_id == user_id)
    )
    row = result.scalar_one_or_none()
    return DigestPreferences.from_row(row) if row else DigestPreferences.default()


async def load_preferences(
    db: AsyncSession,
    user_ids: Iterable[uuid.UUID],
) -> dict[uuid.UUID, DigestPreferences]:
    """Preferences for many users at once; users without a row get defaults."""
    ids = list(user_ids)
    prefs = {user_id: DigestPreferences.default() for user_id in ids}
    if not ids:
        return prefs

    result = await db.execute(
        select(EmailPreference).where(EmailPreference.user_id.in_(ids))
    )
    for row in result.scalars():
        prefs[row.user_id] = DigestPreferences.from_row(row)
    return prefs


async def save_preferences(
    db: AsyncSession,
    user_id: uuid.UUID,
    prefs: DigestPreferences,
) -> DigestPreferences:
    """Create or replace a user's preferences."""
    result = await db.execute(
        select(EmailPreference).where(EmailPreference.user_id == user_id)
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = EmailPreference(user_id=user_id)
        db.add(row)

    row.daily_digest_enabled = prefs.daily_digest_enabled
    row.digest_hour = prefs.digest_hour
    row.include_overdue = prefs.include_overdue
    row.include_today = prefs.include_today
    row.include_this_week = prefs.include_this_week
    row.include_upcoming = prefs.include_upcoming
    row.updated_at = datetime.now(timezone.utc)

    await db.commit()
    return prefs
