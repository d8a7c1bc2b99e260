"""ORM models for users, challenges, progress records and badges.

The schema is created by the Alembic migrations in alembic/versions; tests
build it from this metadata directly.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from streakup.db.base import Base, BigIntPK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """User profile: display fields plus the trust score and grade owned by the engine."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    provider: Mapped[str] = mapped_column(String(16), nullable=False)
    social_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    profile_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    grade: Mapped[str] = mapped_column(String(16), nullable=False, default="bronze", server_default="bronze")
    trust_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


class Challenge(Base):
    """A challenge users join. completion_rate is derived by the aggregator."""

    __tablename__ = "challenges"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    rules: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cautions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    completion_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency_type: Mapped[str] = mapped_column(String(16), nullable=False, default="daily")
    frequency_interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


class ChallengeParticipant(Base):
    """Challenge membership: UNIQUE(challenge_id, user_id)."""

    __tablename__ = "challenge_participants"
    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="challenge_participants_challenge_user_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    challenge_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class CompletionEntry(Base):
    """One completed calendar day with its proof photo.

    UNIQUE(user_challenge_id, completed_on) is what makes a day count at most
    once, including under concurrent completion requests.
    """

    __tablename__ = "completion_entries"
    __table_args__ = (
        UniqueConstraint("user_challenge_id", "completed_on", name="completion_entries_record_day_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_challenge_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("user_challenges.id", ondelete="CASCADE"), nullable=False
    )
    completed_on: Mapped[date] = mapped_column(Date, nullable=False)
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


class UserChallenge(Base):
    """Progress record: one per (user, challenge)."""

    __tablename__ = "user_challenges"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="user_challenges_user_challenge_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    challenge_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_streak_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    max_streak_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    entries: Mapped[list[CompletionEntry]] = relationship(
        "CompletionEntry",
        lazy="selectin",
        order_by="CompletionEntry.completed_on",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def completed_dates(self) -> list[date]:
        """Completed calendar days, oldest first."""
        return [e.completed_on for e in self.entries]

    @property
    def completion_photos(self) -> list[tuple[date, str]]:
        """(day, photo_url) pairs, one per completed day."""
        return [(e.completed_on, e.photo_url) for e in self.entries]


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class BadgeDefinition(Base):
    """Badge catalog entry: condition_type/threshold drive the evaluation engine."""

    __tablename__ = "badge_definitions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon_url: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(16), nullable=False, default="achievement")
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, default="common")
    condition_type: Mapped[str] = mapped_column(String(32), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    category_target: Mapped[str | None] = mapped_column(String(16), nullable=True)
    condition_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


class UserBadge(Base):
    """Earned badge. A non-null representative_order puts it on the user's showcase.

    UNIQUE(user_id, badge_id) keeps awards idempotent; UNIQUE(user_id,
    representative_order) keeps showcase slots distinct (NULLs do not collide).
    """

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="user_badges_user_badge_key"),
        UniqueConstraint("user_id", "representative_order", name="user_badges_user_order_key"),
        CheckConstraint("representative_order BETWEEN 1 AND 4", name="user_badges_representative_order_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("badge_definitions.id", ondelete="CASCADE"), nullable=False
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    representative_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    badge: Mapped[BadgeDefinition] = relationship("BadgeDefinition", lazy="joined")
