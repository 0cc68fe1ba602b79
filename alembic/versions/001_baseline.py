"""Baseline schema: profiles, planner, digest, progress, activities.

Revision ID: 001_baseline
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY,
            email VARCHAR(320),
            full_name VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS subjects (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            name VARCHAR(128) NOT NULL,
            color_code VARCHAR(16),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_subjects_user_id ON subjects(user_id)")

    # --- Study planner ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS study_plans (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            subject_id UUID REFERENCES subjects(id) ON DELETE SET NULL,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            due_date TIMESTAMPTZ NOT NULL,
            priority VARCHAR(8) NOT NULL DEFAULT 'medium',
            completed BOOLEAN NOT NULL DEFAULT false,
            reminder_sent BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ,
            CONSTRAINT study_plans_priority_check CHECK (priority IN ('low', 'medium', 'high'))
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_study_plans_user_id ON study_plans(user_id)")
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_study_plans_pending_due
        ON study_plans(due_date) WHERE completed = false
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS email_preferences (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL UNIQUE REFERENCES profiles(id) ON DELETE CASCADE,
            daily_digest_enabled BOOLEAN NOT NULL DEFAULT true,
            digest_hour INTEGER DEFAULT 8,
            include_overdue BOOLEAN NOT NULL DEFAULT true,
            include_today BOOLEAN NOT NULL DEFAULT true,
            include_this_week BOOLEAN NOT NULL DEFAULT true,
            include_upcoming BOOLEAN NOT NULL DEFAULT true,
            updated_at TIMESTAMPTZ,
            CONSTRAINT email_preferences_digest_hour_check CHECK (digest_hour >= 0 AND digest_hour <= 23)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS digest_deliveries (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            digest_date DATE NOT NULL,
            tasks_count INTEGER NOT NULL DEFAULT 0,
            sent_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT digest_deliveries_user_id_digest_date_key UNIQUE (user_id, digest_date)
        )
    """)

    # --- Gamification ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_progress (
            user_id UUID PRIMARY KEY REFERENCES profiles(id) ON DELETE CASCADE,
            total_xp INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_date DATE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT,
            icon VARCHAR(16),
            requirement_type VARCHAR(32) NOT NULL,
            requirement_value INTEGER NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badges(id),
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_badges_user_id ON user_badges(user_id)")

    # --- Learning activities ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS materials (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            subject_id UUID REFERENCES subjects(id) ON DELETE SET NULL,
            title VARCHAR(256) NOT NULL,
            content TEXT,
            file_url TEXT,
            summary TEXT,
            key_points JSON,
            topics JSON,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_materials_user_id ON materials(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS quizzes (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            material_id UUID REFERENCES materials(id) ON DELETE SET NULL,
            title VARCHAR(256) NOT NULL,
            questions JSON NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_quizzes_user_id ON quizzes(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id UUID PRIMARY KEY,
            quiz_id UUID NOT NULL REFERENCES quizzes(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            score INTEGER NOT NULL,
            total_questions INTEGER NOT NULL,
            answers JSON NOT NULL,
            xp_awarded INTEGER NOT NULL DEFAULT 0,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_quiz_attempts_user_id ON quiz_attempts(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS homework_submissions (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            file_type VARCHAR(64),
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            xp_awarded INTEGER NOT NULL DEFAULT 0,
            feedback TEXT,
            submitted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            reviewed_at TIMESTAMPTZ,
            CONSTRAINT homework_submissions_status_check CHECK (status IN ('pending', 'approved', 'rejected'))
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_homework_submissions_user_id ON homework_submissions(user_id)")


def downgrade() -> None:
    for table in [
        "homework_submissions", "quiz_attempts", "quizzes", "materials",
        "user_badges", "badges", "user_progress",
        "digest_deliveries", "email_preferences", "study_plans", "subjects", "profiles",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")  # noqa: S608
