"""Pydantic models for the email preference endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class EmailPreferencesBody(BaseModel):
    daily_digest_enabled: bool = True
    digest_hour: int | None = Field(default=8, ge=0, le=23)
    include_overdue: bool = True
    include_today: bool = True
    include_this_week: bool = True
    include_upcoming: bool = True
