"""Typed task records read from the study planner."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.db.models import PRIORITIES, StudyPlan

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_NAME = "General"


class InvalidTaskError(ValueError):
    """A task row cannot be categorized (bad due date or priority)."""


def as_utc(value: datetime) -> datetime:
    """Normalize a stored timestamp to an aware UTC datetime.

    Naive values are taken to be UTC, which is how the store writes them.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TaskView:
    """An incomplete study-plan task as the digest sees it."""

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    due_date: datetime
    priority: str
    subject_name: str = DEFAULT_SUBJECT_NAME
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.due_date, datetime):
            msg = f"task {self.id}: due_date must be a datetime"
            raise InvalidTaskError(msg)
        if self.due_date.tzinfo is None:
            msg = f"task {self.id}: due_date must be timezone-aware"
            raise InvalidTaskError(msg)
        if self.priority not in PRIORITIES:
            msg = f"task {self.id}: priority must be one of {', '.join(PRIORITIES)}, got {self.priority!r}"
            raise InvalidTaskError(msg)

    @classmethod
    def from_row(cls, row: StudyPlan) -> TaskView:
        if row.due_date is None:
            msg = f"task {row.id}: missing due_date"
            raise InvalidTaskError(msg)
        return cls(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            due_date=as_utc(row.due_date),
            priority=row.priority,
            subject_name=row.subject.name if row.subject is not None else DEFAULT_SUBJECT_NAME,
            description=row.description or None,
        )


async def load_pending_tasks(db: AsyncSession) -> dict[uuid.UUID, list[TaskView]]:
    """Incomplete tasks grouped by owner, each list in due-date order.

    Rows that fail validation are logged and left out.
    """
    result = await db.execute(
        select(StudyPlan)
        .where(StudyPlan.completed.is_(False))
        .order_by(StudyPlan.due_date.asc())
    )

    by_user: dict[uuid.UUID, list[TaskView]] = defaultdict(list)
    for row in result.scalars().unique():
        try:
            task = TaskView.from_row(row)
        except InvalidTaskError:
            logger.warning("Skipping malformed task %s", row.id, exc_info=True)
            continue
        by_user[task.user_id].append(task)
    return dict(by_user)
