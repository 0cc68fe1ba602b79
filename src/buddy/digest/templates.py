"""
Daily digest email template.

Inline CSS only, for email client compatibility. ``render_digest`` returns a
``RenderedDigest`` with subject, HTML, and plain-text bodies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape

from buddy.planner.buckets import BUCKET_KEYS, TaskBuckets
from buddy.planner.preferences import DigestPreferences
from buddy.planner.tasks import TaskView, as_utc

# Color constants
BRAND = "#667EEA"
BRAND_DARK = "#764BA2"
TEXT_PRIMARY = "#111827"
TEXT_BODY = "#374151"
TEXT_MUTED = "#6B7280"
SURFACE = "#F9FAFB"
BORDER = "#E5E7EB"

PRIORITY_COLORS = {"high": "#DC2626", "medium": "#2563EB", "low": "#6B7280"}

# Bucket key → (heading, accent color)
SECTIONS = {
    "overdue": ("OVERDUE - Immediate Action Required", "#DC2626"),
    "today": ("Due Today", "#F59E0B"),
    "this_week": ("Due This Week", "#2563EB"),
    "upcoming": ("Coming Up", "#6B7280"),
}


@dataclass(frozen=True)
class RenderedDigest:
    subject: str
    html_body: str
    text_body: str
    sections: tuple[str, ...]


def format_due(due: datetime) -> str:
    """e.g. 'Mon, Oct 19, 2026, 3:05 PM UTC'."""
    due = as_utc(due)
    hour = due.hour % 12 or 12
    return f"{due:%a, %b} {due.day}, {due.year}, {hour}:{due:%M} {due:%p} UTC"


def digest_subject(total: int, overdue: int) -> str:
    subject = f"📚 Daily Study Digest - {total} Task{'s' if total != 1 else ''}"
    if overdue > 0:
        subject += f" ({overdue} Overdue!)"
    return subject


def visible_sections(buckets: TaskBuckets, prefs: DigestPreferences) -> tuple[str, ...]:
    """Buckets that get an itemized list: non-empty and enabled."""
    return tuple(key for key in BUCKET_KEYS if getattr(buckets, key) and prefs.includes(key))


def _stat_card(value: int, label: str, background: str, color: str) -> str:
    return f"""\
<td width="25%" style="padding: 6px;">
    <div style="background: {background}; padding: 15px; border-radius: 8px; text-align: center;">
        <p style="font-size: 28px; font-weight: bold; margin: 0; color: {color};">{value}</p>
        <p style="margin: 5px 0 0 0; color: {TEXT_MUTED}; font-size: 13px;">{label}</p>
    </div>
</td>"""


def _task_card(task: TaskView) -> str:
    color = PRIORITY_COLORS.get(task.priority, TEXT_MUTED)
    description = (
        f'<p style="margin: 10px 0 0 0; color: {TEXT_BODY}; font-size: 14px;">{escape(task.description)}</p>'
        if task.description
        else ""
    )
    return f"""\
<div style="background: {SURFACE}; padding: 15px; border-radius: 8px; margin: 10px 0; border-left: 4px solid {color};">
    <h4 style="margin: 0 0 8px 0; font-size: 16px; color: {TEXT_PRIMARY};">{escape(task.title)}</h4>
    <p style="margin: 5px 0; color: {TEXT_MUTED}; font-size: 14px;"><strong>Subject:</strong> {escape(task.subject_name)}</p>
    <p style="margin: 5px 0; color: {TEXT_MUTED}; font-size: 14px;"><strong>Due:</strong> {format_due(task.due_date)}</p>
    <p style="margin: 5px 0; color: {color}; font-size: 14px; font-weight: 600;"><strong>Priority:</strong> {task.priority.upper()}</p>
    {description}
</div>"""


def _section(key: str, tasks: list[TaskView]) -> str:
    heading, color = SECTIONS[key]
    cards = "".join(_task_card(task) for task in tasks)
    return f"""\
<div style="margin: 20px 0;">
    <h3 style="color: {color}; font-size: 18px; margin-bottom: 15px; border-bottom: 2px solid {color}; padding-bottom: 8px;">
        {heading} ({len(tasks)})
    </h3>
    {cards}
</div>"""


def _base_layout(content: str, date_line: str, app_name: str) -> str:
    """Wrap content in the digest layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(app_name)}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background: linear-gradient(135deg, {BRAND} 0%, {BRAND_DARK} 100%); padding: 30px; border-radius: 12px 12px 0 0; text-align: center;">
            <h1 style="color: white; margin: 0; font-size: 28px;">Daily Study Digest</h1>
            <p style="color: rgba(255,255,255,0.9); margin: 10px 0 0 0; font-size: 16px;">{date_line}</p>
        </div>
        <div style="background: white; padding: 30px; border: 1px solid {BORDER}; border-top: none; border-radius: 0 0 12px 12px;">
            {content}
            <div style="margin-top: 30px; padding-top: 20px; border-top: 2px solid {BORDER}; text-align: center;">
                <p style="color: {TEXT_BODY}; font-size: 16px; margin: 0;">Keep up the great work!</p>
                <p style="color: #9CA3AF; font-size: 12px; margin-top: 15px;">- Your {escape(app_name)}</p>
                <p style="color: #D1D5DB; font-size: 11px; margin-top: 10px;">
                    This is an automated daily digest. You're receiving this because you have
                    pending tasks in your study planner.
                </p>
            </div>
        </div>
    </div>
</body>
</html>"""


def render_digest(
    recipient_name: str | None,
    buckets: TaskBuckets,
    prefs: DigestPreferences,
    now: datetime,
    app_name: str = "Buddy Study Companion",
) -> RenderedDigest:
    """Render one user's digest.

    Summary counts always show the true bucket sizes; only the itemized
    sections are filtered by preference.
    """
    name = recipient_name or "there"
    counts = buckets.counts()
    sections = visible_sections(buckets, prefs)
    now = as_utc(now)
    date_line = f"{now:%A, %B} {now.day}, {now.year}"

    overdue_bg, overdue_fg = ("#FEE2E2", "#DC2626") if counts["overdue"] else ("#F0FDF4", "#16A34A")
    stats = "".join([
        _stat_card(counts["overdue"], "Overdue", overdue_bg, overdue_fg),
        _stat_card(counts["today"], "Due Today", "#FEF3C7", "#F59E0B"),
        _stat_card(counts["this_week"], "This Week", "#DBEAFE", "#2563EB"),
        _stat_card(buckets.total, "Total Pending", "#F3F4F6", TEXT_MUTED),
    ])
    section_html = "".join(_section(key, getattr(buckets, key)) for key in sections)

    content = f"""\
<h2 style="color: {TEXT_PRIMARY}; margin-top: 0;">Hey {escape(name)}!</h2>
<p style="color: {TEXT_BODY}; font-size: 16px; line-height: 1.6;">Here's your task overview for today:</p>
<table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="margin: 25px 0;">
    <tr>{stats}</tr>
</table>
{section_html}
<div style="margin-top: 30px; padding: 20px; background: {SURFACE}; border-radius: 8px; border-left: 4px solid {BRAND};">
    <p style="color: {TEXT_BODY}; margin: 0; font-size: 15px;"><strong>Tip:</strong> Focus on overdue and high-priority tasks first to stay on track!</p>
</div>"""

    text_lines = [
        f"Hey {name}!",
        "",
        f"Daily Study Digest for {date_line}",
        "",
        f"Overdue: {counts['overdue']} | Due today: {counts['today']} | "
        f"This week: {counts['this_week']} | Total pending: {buckets.total}",
    ]
    for key in sections:
        heading, _ = SECTIONS[key]
        tasks = getattr(buckets, key)
        text_lines += ["", f"{heading} ({len(tasks)})"]
        for task in tasks:
            text_lines.append(
                f"- {task.title} [{task.subject_name}] due {format_due(task.due_date)}, "
                f"priority {task.priority.upper()}"
            )
            if task.description:
                text_lines.append(f"  {task.description}")
    text_lines += ["", f"-- {app_name}"]

    return RenderedDigest(
        subject=digest_subject(buckets.total, counts["overdue"]),
        html_body=_base_layout(content, date_line, app_name),
        text_body="\n".join(text_lines),
        sections=sections,
    )
