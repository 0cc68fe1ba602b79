"""Hourly daily-digest dispatch.

One run:
1. Load every incomplete task, grouped by user
2. Gate each user on email address, digest_enabled, and preferred UTC hour
3. Skip users who already got today's digest
4. Categorize, filter by preference, render
5. Send with bounded retries; one user's failure never stops the batch
6. Report per-user results
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.config import get_settings
from buddy.db.models import DigestDelivery, Profile
from buddy.digest.templates import RenderedDigest, render_digest
from buddy.email.service import EmailDeliveryError, EmailService
from buddy.planner.buckets import categorize
from buddy.planner.preferences import DigestPreferences, load_preferences
from buddy.planner.tasks import TaskView, load_pending_tasks

logger = structlog.get_logger()


@dataclass(frozen=True)
class Recipient:
    """Directory entry for a digest recipient."""

    user_id: uuid.UUID
    email: str | None
    name: str | None


@dataclass
class DigestResult:
    user_id: uuid.UUID
    tasks_count: int
    status: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "user_id": str(self.user_id),
            "tasks_count": self.tasks_count,
            "status": self.status,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class DigestReport:
    results: list[DigestResult] = field(default_factory=list)

    @property
    def digests_sent(self) -> int:
        return sum(1 for r in self.results if r.status == "sent")

    @property
    def total_users(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "digests_sent": self.digests_sent,
            "total_users": self.total_users,
            "results": [r.to_dict() for r in self.results],
        }


class DigestDispatcher:
    """Builds and sends one digest per eligible user per run."""

    def __init__(
        self,
        db: AsyncSession,
        email_service: EmailService,
        *,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
        dedupe: bool | None = None,
        app_name: str | None = None,
    ) -> None:
        settings = get_settings()
        self.db = db
        self.email_service = email_service
        self.max_attempts = max_attempts if max_attempts is not None else settings.digest_max_attempts
        self.retry_delay = retry_delay if retry_delay is not None else settings.digest_retry_delay_seconds
        self.dedupe = dedupe if dedupe is not None else settings.digest_dedupe_enabled
        self.app_name = app_name or settings.app_name
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)

    async def run(self, now: datetime | None = None) -> DigestReport:
        """Run one dispatch pass at ``now`` (UTC)."""
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        today = now.date()
        report = DigestReport()

        tasks_by_user = await load_pending_tasks(self.db)
        user_ids = list(tasks_by_user)
        logger.info("digest_run_started", hour=now.hour, users_with_tasks=len(user_ids))
        if not user_ids:
            return report

        recipients = await self._load_recipients(user_ids)
        preferences = await load_preferences(self.db, user_ids)
        already_sent = await self._already_sent(user_ids, today) if self.dedupe else set()

        for user_id, tasks in tasks_by_user.items():
            recipient = recipients.get(user_id)
            if recipient is None or not recipient.email:
                logger.info("digest_skipped", user_id=str(user_id), reason="no_email")
                continue

            prefs = preferences[user_id]
            if not prefs.daily_digest_enabled:
                logger.info("digest_skipped", user_id=str(user_id), reason="disabled")
                continue
            if not prefs.passes_gate(now.hour):
                logger.debug(
                    "digest_skipped", user_id=str(user_id), reason="not_preferred_hour",
                    preferred_hour=prefs.digest_hour, current_hour=now.hour,
                )
                continue
            if user_id in already_sent:
                logger.info("digest_skipped", user_id=str(user_id), reason="already_sent_today")
                continue

            report.results.append(await self._process_user(recipient, tasks, prefs, now))

        logger.info(
            "digest_run_finished",
            digests_sent=report.digests_sent,
            total_users=report.total_users,
        )
        return report

    async def _process_user(
        self,
        recipient: Recipient,
        tasks: list[TaskView],
        prefs: DigestPreferences,
        now: datetime,
    ) -> DigestResult:
        try:
            buckets = categorize(tasks, now)
            rendered = render_digest(recipient.name, buckets, prefs, now, app_name=self.app_name)
            await self._deliver(recipient.email, rendered)
        except EmailDeliveryError as e:
            logger.error("digest_failed", user_id=str(recipient.user_id), error=str(e))
            return DigestResult(recipient.user_id, len(tasks), "failed", str(e))
        except Exception as e:
            logger.exception("digest_failed", user_id=str(recipient.user_id))
            return DigestResult(recipient.user_id, len(tasks), "failed", str(e) or type(e).__name__)

        logger.info("digest_sent", user_id=str(recipient.user_id), tasks_count=len(tasks))
        if self.dedupe:
            await self._mark_sent(recipient.user_id, now.date(), len(tasks))
        return DigestResult(recipient.user_id, len(tasks), "sent")

    async def _deliver(self, to: str, rendered: RenderedDigest) -> None:
        """Send with up to ``max_attempts`` tries and a fixed delay between them."""
        last_error: EmailDeliveryError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.email_service.send_email(to, rendered.subject, rendered.html_body, rendered.text_body)
                return
            except EmailDeliveryError as e:
                last_error = e
                logger.warning(
                    "digest_attempt_failed", to=to, attempt=attempt,
                    max_attempts=self.max_attempts, error=str(e),
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)
        raise last_error or EmailDeliveryError("Failed to send email after all retries")

    async def _load_recipients(self, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, Recipient]:
        result = await self.db.execute(
            select(Profile.id, Profile.email, Profile.full_name).where(Profile.id.in_(user_ids))
        )
        return {row.id: Recipient(row.id, row.email, row.full_name) for row in result}

    async def _already_sent(self, user_ids: list[uuid.UUID], today: date) -> set[uuid.UUID]:
        result = await self.db.execute(
            select(DigestDelivery.user_id).where(
                DigestDelivery.digest_date == today,
                DigestDelivery.user_id.in_(user_ids),
            )
        )
        return set(result.scalars())

    async def _mark_sent(self, user_id: uuid.UUID, today: date, tasks_count: int) -> None:
        """Record today's delivery. Best-effort: the email already went out."""
        try:
            self.db.add(DigestDelivery(
                user_id=user_id,
                digest_date=today,
                tasks_count=tasks_count,
                sent_at=datetime.now(timezone.utc),
            ))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.warning("digest_marker_failed", user_id=str(user_id), exc_info=True)


async def send_daily_digests(
    db: AsyncSession,
    email_service: EmailService,
    now: datetime | None = None,
) -> DigestReport:
    """Run one dispatch pass with settings-driven retry and dedupe."""
    return await DigestDispatcher(db, email_service).run(now)
