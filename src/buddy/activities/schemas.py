"""Request/response models for learning-activity endpoints."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class XPAward(BaseModel):
    amount: int
    total_xp: int
    level: int
    leveled_up: bool
    current_streak: int
    badges: list[str] = []


class MaterialCreate(BaseModel):
    title: str = Field(min_length=1, max_length=256)
    content: str | None = None
    subject_id: uuid.UUID | None = None
    file_url: str | None = None


class MaterialResponse(BaseModel):
    id: uuid.UUID
    title: str
    xp: XPAward | None = None
    xp_warning: str | None = None


class QuizAttemptCreate(BaseModel):
    answers: list[int | None]


class QuizAttemptResponse(BaseModel):
    attempt_id: uuid.UUID
    score: int
    total_questions: int
    xp_earned: int
    xp: XPAward | None = None
    xp_warning: str | None = None


class HomeworkReviewResponse(BaseModel):
    submission_id: uuid.UUID
    approved: bool
    xp_awarded: int
    feedback: str | None = None
    xp: XPAward | None = None
    xp_warning: str | None = None
