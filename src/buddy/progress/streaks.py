"""Daily streak algorithm.

``advance_streak`` is pure: identical inputs give identical output no matter
which action point triggered it. Dates are UTC calendar dates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

MILESTONES: dict[int, tuple[str, str]] = {
    2: ("Day 2 streak!", "Keep the momentum going!"),
    7: ("7-day streak!", "One week of consistent learning!"),
    30: ("30-day streak!", "A full month of dedication!"),
}


@dataclass(frozen=True)
class StreakState:
    """Streak columns of a progress record."""

    current_streak: int
    longest_streak: int
    last_activity_date: date | None

    def __post_init__(self) -> None:
        if self.current_streak < 0 or self.longest_streak < 0:
            msg = "streak counters must be non-negative"
            raise ValueError(msg)
        if isinstance(self.last_activity_date, datetime):
            msg = "last_activity_date must be a calendar date, not a timestamp"
            raise TypeError(msg)


@dataclass(frozen=True)
class StreakUpdate:
    """Outcome of applying one day of activity to a streak."""

    current_streak: int
    longest_streak: int
    last_activity_date: date
    changed: bool
    is_new_record: bool


@dataclass(frozen=True)
class StreakMilestone:
    days: int
    title: str
    description: str


def utc_today(now: datetime | None = None) -> date:
    """Today's UTC calendar date."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date()


def advance_streak(state: StreakState, today: date) -> StreakUpdate:
    """Apply activity on ``today`` to a streak.

    - already active today: unchanged
    - active yesterday: streak + 1
    - otherwise (gap or first activity): streak restarts at 1
    """
    last = state.last_activity_date
    if last == today:
        return StreakUpdate(
            current_streak=state.current_streak,
            longest_streak=max(state.longest_streak, state.current_streak),
            last_activity_date=today,
            changed=False,
            is_new_record=False,
        )

    if last == today - timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    is_new_record = current > state.longest_streak
    return StreakUpdate(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_activity_date=today,
        changed=True,
        is_new_record=is_new_record,
    )


def milestone_for(update: StreakUpdate) -> StreakMilestone | None:
    """Milestone to celebrate after an update, if any."""
    if not update.changed:
        return None

    days = update.current_streak
    if days in MILESTONES:
        title, description = MILESTONES[days]
        return StreakMilestone(days, title, description)
    if update.is_new_record and days > 2:
        return StreakMilestone(days, f"New personal best: {days}-day streak!", "You're on fire!")
    return None
