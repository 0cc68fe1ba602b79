"""Due-date buckets for pending tasks."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from buddy.planner.tasks import TaskView, as_utc

THIS_WEEK_DAYS = 7

BUCKET_KEYS = ("overdue", "today", "this_week", "upcoming")


@dataclass
class TaskBuckets:
    """A user's pending tasks split by how soon they are due."""

    overdue: list[TaskView] = field(default_factory=list)
    today: list[TaskView] = field(default_factory=list)
    this_week: list[TaskView] = field(default_factory=list)
    upcoming: list[TaskView] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.overdue) + len(self.today) + len(self.this_week) + len(self.upcoming)

    def counts(self) -> dict[str, int]:
        return {key: len(getattr(self, key)) for key in BUCKET_KEYS}


def bucket_for(due: datetime, now: datetime) -> str:
    """Bucket key for one due timestamp relative to ``now``.

    Overdue covers ``due <= now``. A future timestamp on today's UTC date is
    due today. Otherwise the whole-day distance, rounded up, decides between
    this week (1-7 days) and upcoming (more than 7).
    """
    due = as_utc(due)
    now = as_utc(now)
    if due <= now:
        return "overdue"
    if due.date() == now.date():
        return "today"
    days = math.ceil((due - now) / timedelta(days=1))
    if days <= THIS_WEEK_DAYS:
        return "this_week"
    return "upcoming"


def categorize(tasks: Iterable[TaskView], now: datetime) -> TaskBuckets:
    """Split tasks into buckets, keeping their input order within each."""
    buckets = TaskBuckets()
    for task in tasks:
        getattr(buckets, bucket_for(task.due_date, now)).append(task)
    return buckets
