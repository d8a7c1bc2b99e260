"""Initial schema.

Creates users, challenges, challenge_participants, user_challenges,
completion_entries, badge_definitions and user_badges.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            provider VARCHAR(16) NOT NULL,
            social_id VARCHAR(128) UNIQUE NOT NULL,
            nickname VARCHAR(64) UNIQUE,
            profile_image TEXT,
            grade VARCHAR(16) NOT NULL DEFAULT 'bronze',
            trust_score DOUBLE PRECISION NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenges (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            rules TEXT NOT NULL DEFAULT '',
            cautions TEXT NOT NULL DEFAULT '',
            category VARCHAR(16) NOT NULL,
            image_url TEXT,
            created_by BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            view_count INTEGER NOT NULL DEFAULT 0,
            completion_rate INTEGER NOT NULL DEFAULT 0 CHECK (completion_rate BETWEEN 0 AND 100),
            max_participants INTEGER NOT NULL CHECK (max_participants >= 1),
            frequency_type VARCHAR(16) NOT NULL DEFAULT 'daily',
            frequency_interval INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_challenges_category
        ON challenges(category)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS challenge_participants (
            id BIGSERIAL PRIMARY KEY,
            challenge_id BIGINT NOT NULL REFERENCES challenges(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT challenge_participants_challenge_user_key UNIQUE (challenge_id, user_id)
        )
    """)

    # --- Progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_challenges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            challenge_id BIGINT NOT NULL REFERENCES challenges(id) ON DELETE CASCADE,
            start_date TIMESTAMPTZ NOT NULL,
            score INTEGER NOT NULL DEFAULT 0,
            total_completions INTEGER NOT NULL DEFAULT 0,
            current_streak_count INTEGER NOT NULL DEFAULT 0,
            max_streak_count INTEGER NOT NULL DEFAULT 0,
            last_completion_date DATE,
            updated_at TIMESTAMPTZ,
            CONSTRAINT user_challenges_user_challenge_key UNIQUE (user_id, challenge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_challenges_challenge_score
        ON user_challenges(challenge_id, score DESC, total_completions DESC)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS completion_entries (
            id BIGSERIAL PRIMARY KEY,
            user_challenge_id BIGINT NOT NULL REFERENCES user_challenges(id) ON DELETE CASCADE,
            completed_on DATE NOT NULL,
            photo_url TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT completion_entries_record_day_key UNIQUE (user_challenge_id, completed_on)
        )
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_definitions (
            id BIGSERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            icon_url VARCHAR(256) NOT NULL DEFAULT '',
            category VARCHAR(16) NOT NULL DEFAULT 'achievement',
            rarity VARCHAR(16) NOT NULL DEFAULT 'common',
            condition_type VARCHAR(32) NOT NULL,
            threshold INTEGER NOT NULL CHECK (threshold >= 1),
            category_target VARCHAR(16),
            condition_description TEXT NOT NULL DEFAULT '',
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id BIGINT NOT NULL REFERENCES badge_definitions(id) ON DELETE CASCADE,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            representative_order INTEGER CHECK (representative_order BETWEEN 1 AND 4),
            CONSTRAINT user_badges_user_badge_key UNIQUE (user_id, badge_id),
            CONSTRAINT user_badges_user_order_key UNIQUE (user_id, representative_order)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_badges_user
        ON user_badges(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badge_definitions CASCADE")
    op.execute("DROP TABLE IF EXISTS completion_entries CASCADE")
    op.execute("DROP TABLE IF EXISTS user_challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS challenge_participants CASCADE")
    op.execute("DROP TABLE IF EXISTS challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
