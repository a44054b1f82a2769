"""SQLAlchemy declarative base and progress storage models."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class PlayerProgressModel(Base):
    """ORM model for one player's progress snapshot.

    The whole snapshot is stored per identity; a save replaces it
    (last write wins).
    """

    __tablename__ = "player_progress"

    player_id: Mapped[str] = mapped_column(String, primary_key=True)
    game_progress: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    unlocked_maps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )
