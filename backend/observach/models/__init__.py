"""All SQLAlchemy models – re-exported for Alembic and app use."""

from observach.models.user import Role, User
from observach.models.observation import Comment, ModerationStatus, Observation
from observach.models.vote import Vote, VoteValue

__all__ = [
    "Role", "User",
    "Comment", "ModerationStatus", "Observation",
    "Vote", "VoteValue",
]
