"""Digest rendering: subject line, section filtering, escaping."""

import uuid
from datetime import datetime, timedelta, timezone

from buddy.digest.templates import digest_subject, format_due, render_digest, visible_sections
from buddy.planner.buckets import categorize
from buddy.planner.preferences import DigestPreferences
from buddy.planner.tasks import TaskView

NOW = datetime(2026, 10, 19, 8, 0, 0, tzinfo=timezone.utc)
USER = uuid.uuid4()


def _task(title, due, priority="medium", subject="Biology", description=None):
    return TaskView(
        id=uuid.uuid4(), user_id=USER, title=title, due_date=due,
        priority=priority, subject_name=subject, description=description,
    )


def _buckets():
    return categorize(
        [
            _task("Lab report", NOW - timedelta(days=1), priority="high"),
            _task("Read chapter 4", NOW + timedelta(hours=4)),
            _task("Essay draft", NOW + timedelta(days=3), priority="low"),
            _task("Final project", NOW + timedelta(days=21)),
        ],
        NOW,
    )


class TestSubject:
    def test_plural_with_overdue(self):
        assert digest_subject(4, 1) == "📚 Daily Study Digest - 4 Tasks (1 Overdue!)"

    def test_singular_without_overdue(self):
        assert digest_subject(1, 0) == "📚 Daily Study Digest - 1 Task"


class TestFormatDue:
    def test_afternoon(self):
        assert format_due(datetime(2026, 10, 19, 15, 5, tzinfo=timezone.utc)) == "Mon, Oct 19, 2026, 3:05 PM UTC"

    def test_midnight_is_twelve_am(self):
        assert format_due(datetime(2026, 10, 20, 0, 0, tzinfo=timezone.utc)) == "Tue, Oct 20, 2026, 12:00 AM UTC"


class TestRenderDigest:
    def test_all_sections_rendered_by_default(self):
        rendered = render_digest("Ada", _buckets(), DigestPreferences(), NOW)
        assert rendered.sections == ("overdue", "today", "this_week", "upcoming")
        assert rendered.subject == "📚 Daily Study Digest - 4 Tasks (1 Overdue!)"
        for heading in ["OVERDUE - Immediate Action Required", "Due Today", "Due This Week", "Coming Up"]:
            assert heading in rendered.html_body
            assert heading in rendered.text_body
        assert "Hey Ada!" in rendered.html_body
        assert "Monday, October 19, 2026" in rendered.html_body

    def test_excluded_section_hidden_but_counted(self):
        prefs = DigestPreferences(include_overdue=False)
        rendered = render_digest("Ada", _buckets(), prefs, NOW)

        assert "overdue" not in rendered.sections
        assert "OVERDUE - Immediate Action Required" not in rendered.html_body
        assert "Lab report" not in rendered.html_body
        assert "Lab report" not in rendered.text_body
        # Summary still reports the real counts
        assert "Overdue: 1 |" in rendered.text_body
        assert "(1 Overdue!)" in rendered.subject

    def test_empty_buckets_have_no_section(self):
        buckets = categorize([_task("Quiz prep", NOW + timedelta(hours=2))], NOW)
        assert visible_sections(buckets, DigestPreferences()) == ("today",)
        rendered = render_digest("Ada", buckets, DigestPreferences(), NOW)
        assert "Due This Week" not in rendered.html_body
        assert rendered.subject == "📚 Daily Study Digest - 1 Task"

    def test_missing_name_falls_back(self):
        rendered = render_digest(None, _buckets(), DigestPreferences(), NOW)
        assert "Hey there!" in rendered.text_body

    def test_task_fields_are_escaped(self):
        buckets = categorize(
            [_task("<script>alert(1)</script>", NOW + timedelta(hours=1),
                   subject="R&D", description='Use "quotes" & <b>tags</b>')],
            NOW,
        )
        rendered = render_digest("<Eve>", buckets, DigestPreferences(), NOW)
        assert "<script>" not in rendered.html_body
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in rendered.html_body
        assert "R&amp;D" in rendered.html_body
        assert "&lt;b&gt;tags&lt;/b&gt;" in rendered.html_body
        assert "Hey &lt;Eve&gt;!" in rendered.html_body

    def test_task_details_in_text_body(self):
        rendered = render_digest("Ada", _buckets(), DigestPreferences(), NOW)
        assert "- Essay draft [Biology] due Thu, Oct 22, 2026, 8:00 AM UTC, priority LOW" in rendered.text_body
