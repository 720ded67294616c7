"""
cadence.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables:
- user_xp    — Per-member level and progress toward the next level
- reminders  — User-scheduled reminders awaiting delivery
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Cadence ORM models."""


# ---------------------------------------------------------------------------
# UserXp — one row per Discord member, created on first message
# ---------------------------------------------------------------------------
class UserXp(Base):
    """Level and progress for one member.

    ``xp`` is progress toward the *next* level, not lifetime XP.  Rows may
    have been written under an older leveling formula; readers always
    renormalize through :func:`cadence.engine.progression.apply`.
    """

    __tablename__ = "user_xp"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    level: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        Index("ix_user_xp_level_xp", "level", "xp"),
    )

    def __repr__(self) -> str:
        return f"<UserXp user={self.user_id} lvl={self.level} xp={self.xp}>"


# ---------------------------------------------------------------------------
# Reminder — created by !remindme, deleted by the scheduler after delivery
# ---------------------------------------------------------------------------
class Reminder(Base):
    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reminder_text: Mapped[str] = mapped_column(Text, nullable=False)
    remind_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_reminders_remind_at", "remind_at"),
    )

    def __repr__(self) -> str:
        return f"<Reminder id={self.id} user={self.user_id} at={self.remind_at}>"
