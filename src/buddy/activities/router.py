"""Learning-activity endpoints that earn XP."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.activities.schemas import (
    HomeworkReviewResponse,
    MaterialCreate,
    MaterialResponse,
    QuizAttemptCreate,
    QuizAttemptResponse,
    XPAward,
)
from buddy.activities.service import (
    create_material,
    record_quiz_attempt,
    review_homework,
    schedule_background,
    summarize_material,
    try_award_xp,
)
from buddy.ai.gateway import AIGateway, AIGatewayError, get_ai_gateway
from buddy.auth.dependencies import get_current_user
from buddy.config import get_settings
from buddy.database import get_session, get_session_factory
from buddy.db.models import HomeworkSubmission, Profile, Quiz
from buddy.progress.ledger import AwardResult
from buddy.redis_client import get_redis_dep

router = APIRouter(prefix="/api/v1", tags=["Activities"])


def _xp_payload(result: AwardResult | None) -> XPAward | None:
    if result is None:
        return None
    return XPAward(
        amount=result.amount,
        total_xp=result.total_xp,
        level=result.level,
        leveled_up=result.leveled_up,
        current_streak=result.streak.current_streak,
        badges=result.badges,
    )


@router.post("/materials", response_model=MaterialResponse, status_code=201)
async def upload_material(
    body: MaterialCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    """Save a material, award upload XP, and summarize it in the background."""
    user_id = user.id
    material = await create_material(
        db, user_id, body.title, content=body.content, subject_id=body.subject_id, file_url=body.file_url,
    )
    material_id, title = material.id, material.title

    if body.content and gateway.api_key:
        schedule_background(
            summarize_material(gateway, get_session_factory(), material_id, body.content),
            name=f"summarize-material-{material_id}",
        )

    result, warning = await try_award_xp(db, redis, user_id, get_settings().material_upload_xp, "material_upload")
    return MaterialResponse(id=material_id, title=title, xp=_xp_payload(result), xp_warning=warning)


@router.post("/quizzes/{quiz_id}/attempts", response_model=QuizAttemptResponse, status_code=201)
async def submit_quiz_attempt(
    quiz_id: uuid.UUID,
    body: QuizAttemptCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Grade a quiz attempt and award XP per correct answer."""
    user_id = user.id
    quiz = await db.get(Quiz, quiz_id)
    if quiz is None or quiz.user_id != user_id:
        raise HTTPException(status_code=404, detail="Quiz not found")

    try:
        attempt = await record_quiz_attempt(db, quiz, user_id, body.answers)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    response = QuizAttemptResponse(
        attempt_id=attempt.id,
        score=attempt.score,
        total_questions=attempt.total_questions,
        xp_earned=attempt.xp_awarded,
    )
    result, warning = await try_award_xp(db, redis, user_id, attempt.xp_awarded, "quiz")
    response.xp = _xp_payload(result)
    response.xp_warning = warning
    return response


@router.post("/homework/{submission_id}/review", response_model=HomeworkReviewResponse)
async def review_homework_submission(
    submission_id: uuid.UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    """Run the AI review on a pending submission; approval earns XP."""
    user_id = user.id
    submission = await db.get(HomeworkSubmission, submission_id)
    if submission is None or submission.user_id != user_id:
        raise HTTPException(status_code=404, detail="Submission not found")
    if submission.status != "pending":
        raise HTTPException(status_code=409, detail="Submission already reviewed")

    try:
        submission = await review_homework(db, gateway, submission)
    except AIGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    response = HomeworkReviewResponse(
        submission_id=submission.id,
        approved=submission.status == "approved",
        xp_awarded=submission.xp_awarded,
        feedback=submission.feedback,
    )
    if response.approved:
        result, warning = await try_award_xp(db, redis, user_id, submission.xp_awarded, "homework")
        response.xp = _xp_payload(result)
        response.xp_warning = warning
    return response
