"""
todbot.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- prompts           — Approved truth/dare prompts with per-category rotation order
- rotation_cursors  — Last served position per category
- submissions       — Member-proposed prompts awaiting moderation
- prompt_ratings    — One up/down vote per (prompt, user)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from todbot.constants import PROMPT_ID_LENGTH, SUBMISSION_ID_LENGTH, Category, SubmissionStatus

# Name of the per-category uniqueness index; the position migration looks
# for it to decide whether the schema is current.
PROMPT_POSITION_INDEX = "uq_prompts_category_position"

_CATEGORY_CHECK = "category IN ({})".format(", ".join(f"'{c.value}'" for c in Category))
_STATUS_CHECK = "status IN ({})".format(", ".join(f"'{s.value}'" for s in SubmissionStatus))


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all todbot ORM models."""


# ---------------------------------------------------------------------------
# Prompts: the rotation pool
# ---------------------------------------------------------------------------
class Prompt(Base):
    """An approved truth or dare.

    ``seq`` is an internal insertion counter (tie-breaker for renumbering);
    ``id`` is the short public identifier moderators type into commands.
    """
    __tablename__ = "prompts"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(PROMPT_ID_LENGTH), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(10), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(32), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    ratings: Mapped[list[Rating]] = relationship(
        back_populates="prompt", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(_CATEGORY_CHECK, name="ck_prompts_category"),
        Index(PROMPT_POSITION_INDEX, "category", "position", unique=True),
    )

    def __repr__(self) -> str:
        return f"<Prompt id={self.id} category={self.category} pos={self.position}>"


# ---------------------------------------------------------------------------
# RotationCursor: the only shared mutable rotation state
# ---------------------------------------------------------------------------
class RotationCursor(Base):
    __tablename__ = "rotation_cursors"

    category: Mapped[str] = mapped_column(String(10), primary_key=True)
    last_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<RotationCursor category={self.category} last={self.last_position}>"


# ---------------------------------------------------------------------------
# Submissions: moderation queue
# ---------------------------------------------------------------------------
class Submission(Base):
    """A member-proposed prompt.

    ``status`` only ever moves ``pending → approved`` or ``pending → rejected``;
    ``resolved_at``/``resolver_id`` are written once, on that transition.
    """
    __tablename__ = "submissions"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(SUBMISSION_ID_LENGTH), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(10), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    submitter_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    origin_guild_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=SubmissionStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    resolver_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    moderation_channel_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    moderation_message_id: Mapped[int | None] = mapped_column(BigInteger, default=None)

    __table_args__ = (
        CheckConstraint(_CATEGORY_CHECK, name="ck_submissions_category"),
        CheckConstraint(_STATUS_CHECK, name="ck_submissions_status"),
        Index("ix_submissions_status", "status"),
        Index("ix_submissions_submitter_status", "submitter_id", "status"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == SubmissionStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<Submission id={self.id} category={self.category} status={self.status}>"


# ---------------------------------------------------------------------------
# Ratings: one vote per (prompt, user)
# ---------------------------------------------------------------------------
class Rating(Base):
    __tablename__ = "prompt_ratings"

    prompt_id: Mapped[str] = mapped_column(
        String(PROMPT_ID_LENGTH),
        ForeignKey("prompts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    prompt: Mapped[Prompt] = relationship(back_populates="ratings")

    __table_args__ = (
        CheckConstraint("value IN (-1, 1)", name="ck_prompt_ratings_value"),
        Index("ix_prompt_ratings_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Rating prompt={self.prompt_id} user={self.user_id} value={self.value}>"
