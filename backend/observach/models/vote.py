"""Community vote on whether an approved observation is identified correctly."""
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from observach.database import Base


class VoteValue(str, enum.Enum):
    COHERENT = "coherent"
    INCOHERENT = "incoherent"


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("observation_id", "voter_id", name="uq_vote_observation_voter"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    observation_id = Column(
        Integer, ForeignKey("observations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    value = Column(
        Enum(
            VoteValue,
            name="vote_value",
            native_enum=False,
            create_constraint=True,
            length=16,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
        ),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    observation = relationship("Observation", back_populates="votes")
