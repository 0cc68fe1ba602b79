"""HTTP endpoints through the ASGI app."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text

from buddy.activities.service import XP_WARNING
from buddy.ai.gateway import AIGatewayError, get_ai_gateway
from buddy.db.models import EmailPreference, HomeworkSubmission, Material, Quiz, UserProgress
from buddy.email.service import EmailService, get_email_service
from buddy.planner.preferences import DigestPreferences, save_preferences


class FakeGateway:
    """Stands in for the AI gateway with a canned verdict."""

    api_key = ""

    def __init__(self, reply=None, error=None):
        self.reply = reply or {}
        self.error = error
        self.prompts = []

    async def complete_json(self, system, user):
        self.prompts.append(user)
        if self.error is not None:
            raise self.error
        return self.reply


def _use_gateway(app, gateway):
    app.dependency_overrides[get_ai_gateway] = lambda: gateway


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready_without_redis_is_degraded(self, client):
        response = await client.get("/ready")
        data = response.json()
        assert data["checks"]["database"] == "ok"
        assert data["status"] == "degraded"


class TestAuth:
    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, client):
        response = await client.get("/api/v1/progress", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_profile_rejected(self, client, auth_headers):
        response = await client.get("/api/v1/progress", headers=auth_headers(uuid.uuid4()))
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"


class TestProgressApi:
    @pytest.mark.asyncio
    async def test_new_user_progress(self, client, make_profile, auth_headers):
        profile = await make_profile()
        response = await client.get("/api/v1/progress", headers=auth_headers(profile.id))
        assert response.status_code == 200
        assert response.json() == {
            "total_xp": 0,
            "level": 1,
            "xp_into_level": 0,
            "xp_for_level": 100,
            "next_level_xp": 100,
            "current_streak": 0,
            "longest_streak": 0,
            "last_activity_date": None,
        }

    @pytest.mark.asyncio
    async def test_badges_empty(self, client, make_profile, auth_headers):
        profile = await make_profile()
        response = await client.get("/api/v1/progress/badges", headers=auth_headers(profile.id))
        assert response.status_code == 200
        assert response.json() == {"earned": [], "total_earned": 0}


class TestEmailPreferencesApi:
    @pytest.mark.asyncio
    async def test_defaults(self, client, make_profile, auth_headers):
        profile = await make_profile()
        response = await client.get("/api/v1/email-preferences", headers=auth_headers(profile.id))
        assert response.status_code == 200
        assert response.json() == {
            "daily_digest_enabled": True,
            "digest_hour": 8,
            "include_overdue": True,
            "include_today": True,
            "include_this_week": True,
            "include_upcoming": True,
        }

    @pytest.mark.asyncio
    async def test_update_and_read_back(self, client, make_profile, auth_headers):
        profile = await make_profile()
        headers = auth_headers(profile.id)
        body = {
            "daily_digest_enabled": True,
            "digest_hour": 20,
            "include_overdue": True,
            "include_today": True,
            "include_this_week": False,
            "include_upcoming": False,
        }
        response = await client.put("/api/v1/email-preferences", json=body, headers=headers)
        assert response.status_code == 200
        assert response.json() == body

        response = await client.get("/api/v1/email-preferences", headers=headers)
        assert response.json() == body

    @pytest.mark.asyncio
    async def test_any_hour_is_stored_as_null(self, client, db_session, make_profile, auth_headers):
        profile = await make_profile()
        user_id = profile.id
        headers = auth_headers(user_id)

        response = await client.put("/api/v1/email-preferences", json={"digest_hour": None}, headers=headers)
        assert response.status_code == 200
        assert response.json()["digest_hour"] is None

        assert (await client.get("/api/v1/email-preferences", headers=headers)).json()["digest_hour"] is None
        stored = await db_session.scalar(select(EmailPreference).where(EmailPreference.user_id == user_id))
        assert stored.digest_hour is None

    @pytest.mark.asyncio
    async def test_out_of_range_hour(self, client, make_profile, auth_headers):
        profile = await make_profile()
        response = await client.put(
            "/api/v1/email-preferences", json={"digest_hour": 24}, headers=auth_headers(profile.id)
        )
        assert response.status_code == 422


class TestMaterialsApi:
    @pytest.mark.asyncio
    async def test_upload_awards_xp(self, app, client, db_session, make_profile, auth_headers):
        _use_gateway(app, FakeGateway())
        profile = await make_profile()
        user_id = profile.id

        response = await client.post(
            "/api/v1/materials",
            json={"title": "Cell biology notes", "content": "Mitochondria..."},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Cell biology notes"
        assert data["xp"]["amount"] == 10
        assert data["xp"]["total_xp"] == 10
        assert data["xp"]["current_streak"] == 1
        assert data["xp_warning"] is None

    @pytest.mark.asyncio
    async def test_ledger_failure_keeps_material(self, app, client, db_session, make_profile, auth_headers):
        _use_gateway(app, FakeGateway())
        profile = await make_profile()
        user_id = profile.id
        headers = auth_headers(user_id)
        await db_session.execute(text("DROP TABLE user_progress"))
        await db_session.commit()

        response = await client.post("/api/v1/materials", json={"title": "Kept anyway"}, headers=headers)

        assert response.status_code == 201
        data = response.json()
        assert data["xp"] is None
        assert data["xp_warning"] == XP_WARNING
        stored = await db_session.scalar(select(Material).where(Material.title == "Kept anyway"))
        assert stored is not None
        assert stored.user_id == user_id


class TestQuizApi:
    async def _quiz(self, db_session, user_id):
        quiz = Quiz(
            id=uuid.uuid4(),
            user_id=user_id,
            title="Chemistry basics",
            questions=[
                {"question": "H2O?", "options": ["Water", "Salt"], "correct_answer": 0},
                {"question": "NaCl?", "options": ["Water", "Salt"], "correct_answer": 1},
                {"question": "O2?", "options": ["Oxygen", "Gold"], "correct_answer": 0},
            ],
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(quiz)
        await db_session.commit()
        return quiz.id

    @pytest.mark.asyncio
    async def test_attempt_awards_five_per_correct(self, client, db_session, make_profile, auth_headers):
        profile = await make_profile()
        user_id = profile.id
        quiz_id = await self._quiz(db_session, user_id)

        response = await client.post(
            f"/api/v1/quizzes/{quiz_id}/attempts", json={"answers": [0, 1, 1]}, headers=auth_headers(user_id)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["score"] == 2
        assert data["total_questions"] == 3
        assert data["xp_earned"] == 10
        assert data["xp"]["total_xp"] == 10

    @pytest.mark.asyncio
    async def test_zero_correct_awards_nothing(self, client, db_session, make_profile, auth_headers):
        profile = await make_profile()
        user_id = profile.id
        quiz_id = await self._quiz(db_session, user_id)

        response = await client.post(
            f"/api/v1/quizzes/{quiz_id}/attempts", json={"answers": [1, 0, 1]}, headers=auth_headers(user_id)
        )

        assert response.status_code == 201
        assert response.json()["xp"] is None
        assert await db_session.get(UserProgress, user_id) is None

    @pytest.mark.asyncio
    async def test_wrong_answer_count(self, client, db_session, make_profile, auth_headers):
        profile = await make_profile()
        user_id = profile.id
        quiz_id = await self._quiz(db_session, user_id)

        response = await client.post(
            f"/api/v1/quizzes/{quiz_id}/attempts", json={"answers": [0]}, headers=auth_headers(user_id)
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_someone_elses_quiz(self, client, db_session, make_profile, auth_headers):
        owner = await make_profile(email="owner@example.com")
        other = await make_profile(email="other@example.com")
        quiz_id = await self._quiz(db_session, owner.id)

        response = await client.post(
            f"/api/v1/quizzes/{quiz_id}/attempts", json={"answers": [0, 1, 0]}, headers=auth_headers(other.id)
        )
        assert response.status_code == 404


class TestHomeworkApi:
    async def _submission(self, db_session, user_id):
        submission = HomeworkSubmission(
            id=uuid.uuid4(),
            user_id=user_id,
            title="Essay on photosynthesis",
            description="Three pages",
            status="pending",
            xp_awarded=0,
            submitted_at=datetime.now(timezone.utc),
        )
        db_session.add(submission)
        await db_session.commit()
        return submission.id

    @pytest.mark.asyncio
    async def test_approved_review_awards_clamped_xp(self, app, client, db_session, make_profile, auth_headers):
        gateway = FakeGateway(reply={"completed": True, "xp": 80, "feedback": "Thorough work"})
        _use_gateway(app, gateway)
        profile = await make_profile()
        user_id = profile.id
        submission_id = await self._submission(db_session, user_id)
        headers = auth_headers(user_id)

        response = await client.post(f"/api/v1/homework/{submission_id}/review", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["approved"] is True
        assert data["xp_awarded"] == 50
        assert data["feedback"] == "Thorough work"
        assert data["xp"]["total_xp"] == 50
        assert "Essay on photosynthesis" in gateway.prompts[0]

        again = await client.post(f"/api/v1/homework/{submission_id}/review", headers=headers)
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_rejected_review_awards_nothing(self, app, client, db_session, make_profile, auth_headers):
        _use_gateway(app, FakeGateway(reply={"completed": False, "xp": 40, "feedback": "Incomplete"}))
        profile = await make_profile()
        user_id = profile.id
        submission_id = await self._submission(db_session, user_id)

        response = await client.post(f"/api/v1/homework/{submission_id}/review", headers=auth_headers(user_id))

        data = response.json()
        assert data["approved"] is False
        assert data["xp_awarded"] == 0
        assert data["xp"] is None

    @pytest.mark.asyncio
    async def test_gateway_failure_is_502(self, app, client, db_session, make_profile, auth_headers):
        _use_gateway(app, FakeGateway(error=AIGatewayError("AI API error: 500")))
        profile = await make_profile()
        user_id = profile.id
        submission_id = await self._submission(db_session, user_id)

        response = await client.post(f"/api/v1/homework/{submission_id}/review", headers=auth_headers(user_id))

        assert response.status_code == 502
        stored = await db_session.get(HomeworkSubmission, submission_id)
        assert stored.status == "pending"


class TestDigestTrigger:
    @pytest.mark.asyncio
    async def test_trigger_returns_report(self, app, client, db_session, make_profile, make_task, make_provider):
        provider = make_provider()
        app.dependency_overrides[get_email_service] = lambda: EmailService(provider=provider)
        ada = await make_profile(email="ada@example.com")
        ada_id = ada.id
        await make_task(ada_id, "Read chapter", datetime.now(timezone.utc) + timedelta(days=2))
        await save_preferences(db_session, ada_id, DigestPreferences(digest_hour=None))

        response = await client.post("/api/v1/digest/send")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "digests_sent": 1,
            "total_users": 1,
            "results": [{"user_id": str(ada_id), "tasks_count": 1, "status": "sent"}],
        }
        assert provider.sent[0]["to"] == "ada@example.com"

    @pytest.mark.asyncio
    async def test_secret_required_when_configured(self, app, client, monkeypatch, make_provider):
        from buddy.config import get_settings

        monkeypatch.setenv("BUDDY_DIGEST_TRIGGER_SECRET", "cron-secret")
        get_settings.cache_clear()
        app.dependency_overrides[get_email_service] = lambda: EmailService(provider=make_provider())

        assert (await client.post("/api/v1/digest/send")).status_code == 401
        assert (await client.post("/api/v1/digest/send", headers={"X-Cron-Secret": "wrong"})).status_code == 401
        response = await client.post("/api/v1/digest/send", headers={"X-Cron-Secret": "cron-secret"})
        assert response.status_code == 200
        assert response.json()["total_users"] == 0
