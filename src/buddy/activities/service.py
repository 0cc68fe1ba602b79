"""Primary writes for XP-earning actions, plus their best-effort side tasks.

Each action commits its own row first and only then asks the ledger for XP.
A ledger failure is reported as a warning and never undoes the action.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Coroutine
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from buddy.ai.gateway import AIGateway, AIGatewayError
from buddy.config import get_settings
from buddy.db.models import HomeworkSubmission, Material, Quiz, QuizAttempt
from buddy.progress.ledger import AwardResult, award_xp

logger = logging.getLogger(__name__)

XP_WARNING = "Your progress was saved, but XP could not be recorded. It will not be retried."

SUMMARY_PROMPT = (
    "You are a study assistant. Analyze study materials and extract key information. "
    'Respond in JSON: {"summary": str, "key_points": [str], "topics": [str]}'
)
HOMEWORK_PROMPT = (
    "You are a homework verification assistant. Decide whether a submission looks complete. "
    'Respond in JSON: {"completed": bool, "xp": int (10-50 based on quality), "feedback": str}'
)

# Detached side tasks; held here so they are not garbage collected mid-flight.
_background_tasks: set[asyncio.Task[Any]] = set()


def schedule_background(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
    """Run a coroutine as a fire-and-forget task whose failure is only logged."""
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_background_done)
    return task


def _on_background_done(task: asyncio.Task[Any]) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Background task %s failed", task.get_name(), exc_info=exc)


async def try_award_xp(
    db: AsyncSession,
    redis: object,
    user_id: uuid.UUID,
    amount: int,
    source: str,
) -> tuple[AwardResult | None, str | None]:
    """Award XP after a committed action. Returns (result, warning)."""
    if amount <= 0:
        return None, None
    try:
        return await award_xp(db, redis, user_id, amount, source=source), None
    except SQLAlchemyError:
        logger.warning("XP award for %s lost (%d XP from %s)", user_id, amount, source)
        return None, XP_WARNING


# ---------------------------------------------------------------------------
# Materials
# ---------------------------------------------------------------------------


async def create_material(
    db: AsyncSession,
    user_id: uuid.UUID,
    title: str,
    content: str | None = None,
    subject_id: uuid.UUID | None = None,
    file_url: str | None = None,
) -> Material:
    material = Material(
        user_id=user_id,
        subject_id=subject_id,
        title=title,
        content=content,
        file_url=file_url,
        created_at=datetime.now(timezone.utc),
    )
    db.add(material)
    await db.commit()
    return material


async def summarize_material(
    gateway: AIGateway,
    session_factory: async_sessionmaker[AsyncSession],
    material_id: uuid.UUID,
    content: str,
) -> None:
    """Ask the model for a summary and store it on the material."""
    try:
        result = await gateway.complete_json(SUMMARY_PROMPT, f"Material:\n{content}")
    except AIGatewayError:
        logger.warning("Summary generation failed for material %s", material_id, exc_info=True)
        return

    async with session_factory() as db:
        material = await db.get(Material, material_id)
        if material is None:
            return
        material.summary = str(result.get("summary") or "") or None
        material.key_points = list(result.get("key_points") or [])
        material.topics = list(result.get("topics") or [])
        await db.commit()
    logger.info("Stored summary for material %s", material_id)


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------


def score_quiz(questions: list[dict], answers: list[int | None]) -> int:
    """Count answers that match each question's ``correct_answer``."""
    if len(answers) != len(questions):
        msg = f"Expected {len(questions)} answers, got {len(answers)}"
        raise ValueError(msg)
    return sum(
        1
        for question, answer in zip(questions, answers)
        if answer is not None and answer == question.get("correct_answer")
    )


async def record_quiz_attempt(
    db: AsyncSession,
    quiz: Quiz,
    user_id: uuid.UUID,
    answers: list[int | None],
) -> QuizAttempt:
    """Score and store an attempt. XP is ``quiz_xp_per_correct`` per correct answer."""
    score = score_quiz(quiz.questions, answers)
    attempt = QuizAttempt(
        quiz_id=quiz.id,
        user_id=user_id,
        score=score,
        total_questions=len(quiz.questions),
        answers=list(answers),
        xp_awarded=score * get_settings().quiz_xp_per_correct,
        completed_at=datetime.now(timezone.utc),
    )
    db.add(attempt)
    await db.commit()
    return attempt


# ---------------------------------------------------------------------------
# Homework
# ---------------------------------------------------------------------------


def clamp_homework_xp(value: object) -> int:
    """Clamp the model's XP suggestion into the allowed range."""
    settings = get_settings()
    try:
        xp = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        xp = settings.homework_min_xp
    return min(settings.homework_max_xp, max(settings.homework_min_xp, xp))


async def review_homework(
    db: AsyncSession,
    gateway: AIGateway,
    submission: HomeworkSubmission,
) -> HomeworkSubmission:
    """Have the model judge a submission and store the verdict.

    Raises ``AIGatewayError`` if no verdict could be obtained; the submission
    stays pending in that case.
    """
    verdict = await gateway.complete_json(
        HOMEWORK_PROMPT,
        f"Analyze this homework submission:\n"
        f"Title: {submission.title}\n"
        f"Description: {submission.description or 'No description provided'}\n"
        f"File Type: {submission.file_type or 'No file'}",
    )
    approved = bool(verdict.get("completed"))

    submission.status = "approved" if approved else "rejected"
    submission.xp_awarded = clamp_homework_xp(verdict.get("xp")) if approved else 0
    submission.feedback = str(verdict.get("feedback") or "")
    submission.reviewed_at = datetime.now(timezone.utc)
    await db.commit()
    return submission
