"""HTTP trigger for the daily digest (used by external schedulers)."""

from __future__ import annotations

import secrets

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from buddy.config import get_settings
from buddy.database import get_session
from buddy.digest.dispatcher import send_daily_digests
from buddy.email.service import EmailService, get_email_service

router = APIRouter(prefix="/api/v1/digest", tags=["Digest"])


def verify_trigger_secret(x_cron_secret: str | None = Header(default=None)) -> None:
    """Require the shared cron secret when one is configured."""
    expected = get_settings().digest_trigger_secret
    if not expected:
        return
    if x_cron_secret is None or not secrets.compare_digest(x_cron_secret, expected):
        raise HTTPException(status_code=401, detail="Invalid cron secret")


@router.post("/send", dependencies=[Depends(verify_trigger_secret)])
async def trigger_digest(
    db: AsyncSession = Depends(get_session),
    email_service: EmailService = Depends(get_email_service),
) -> dict:
    """Run one digest pass now and return the per-user report."""
    report = await send_daily_digests(db, email_service)
    return report.to_dict()
