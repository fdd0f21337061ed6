"""Observation & comment models and the shared moderation status."""
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from observach.database import Base


class ModerationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Outcomes an admin may set; pending is only ever the initial state.
MODERATION_DECISIONS = (ModerationStatus.APPROVED, ModerationStatus.REJECTED)


def _status_column(name: str) -> Column:
    return Column(
        Enum(
            ModerationStatus,
            name=name,
            native_enum=False,
            create_constraint=True,
            length=16,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
        ),
        nullable=False,
        default=ModerationStatus.PENDING,
        index=True,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Observation(Base):
    __tablename__ = "observations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    author_name = Column(String(200), nullable=False)  # snapshot at submission time
    photo_ref = Column(String(500), nullable=False)
    popular_name = Column(String(200), nullable=False)
    scientific_name = Column(String(200), nullable=False)
    group = Column("species_group", String(100), nullable=False)
    location = Column(String(300), nullable=False)
    sex = Column(String(50), nullable=False)
    observed_at = Column(DateTime(timezone=True), nullable=False)
    status = _status_column("observation_status")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    comments = relationship(
        "Comment",
        back_populates="observation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    votes = relationship(
        "Vote",
        back_populates="observation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    observation_id = Column(
        Integer, ForeignKey("observations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    author_name = Column(String(200), nullable=False)
    text = Column(Text, nullable=False)
    status = _status_column("comment_status")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    observation = relationship("Observation", back_populates="comments")
