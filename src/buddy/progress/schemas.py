"""Pydantic response models for progress endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class ProgressResponse(BaseModel):
    total_xp: int
    level: int
    xp_into_level: int
    xp_for_level: int
    next_level_xp: int
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None


class EarnedBadgeResponse(BaseModel):
    slug: str
    name: str
    description: str | None = None
    icon: str | None = None
    earned_at: datetime


class UserBadgesResponse(BaseModel):
    earned: list[EarnedBadgeResponse]
    total_earned: int
