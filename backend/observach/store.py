"""Content store: durable users, observations, comments and votes.

All writes are short, single-transaction operations that enforce the
write-time invariants (required fields, approved-only targets, one vote per
voter). Reads are never cached.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from observach.errors import Conflict, NotFound, ValidationError
from observach.models import Comment, ModerationStatus, Observation, Role, User, Vote, VoteValue
from observach.models.observation import MODERATION_DECISIONS

logger = logging.getLogger(__name__)

OBSERVATION_TEXT_FIELDS = ("popular_name", "scientific_name", "group", "location", "sex")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalize_text(value: Any) -> str:
    """Trim incoming string data; ``None`` becomes an empty string."""
    if value is None:
        return ""
    return str(value).strip()


def parse_observed_at(value: Any) -> datetime:
    """Accept a datetime or an ISO date/datetime string, returned in UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = normalize_text(value)
        if not raw:
            raise ValidationError("observed_at must not be empty")
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"observed_at is not a valid date: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _moderation_decision(status: Any) -> ModerationStatus:
    try:
        decision = ModerationStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid status: {status!r}")
    if decision not in MODERATION_DECISIONS:
        raise ValidationError("Status must be 'approved' or 'rejected'")
    return decision


def _newest_first(query, entity):
    # created_at descending; equal timestamps keep insertion order
    return query.order_by(entity.created_at.desc(), entity.id.asc())


class ContentStore:
    """Repository for the four persisted relations."""

    def __init__(self, db: Session):
        self.db = db

    # ── Users ─────────────────────────────────────────────────

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.email == normalize_email(email))
        ).scalar_one_or_none()

    def create_user(self, name: str, email: str, password_hash: str, role: Role | str = Role.USER) -> User:
        name = normalize_text(name)
        email = normalize_email(email)
        if not name or not email:
            raise ValidationError("name and email are required")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Invalid role: {role!r}")
        if self.get_user_by_email(email):
            raise Conflict("Email already registered")

        user = User(name=name, email=email, password_hash=password_hash, role=role)
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Email already registered")
        self.db.refresh(user)
        return user

    # ── Observations ──────────────────────────────────────────

    def get_observation(self, observation_id: int) -> Optional[Observation]:
        return self.db.get(Observation, observation_id)

    def create_observation(self, author_id: int, fields: Mapping[str, Any]) -> Observation:
        values = {name: normalize_text(fields.get(name)) for name in OBSERVATION_TEXT_FIELDS + ("photo_ref",)}
        missing = [name for name, value in values.items() if not value]
        if not normalize_text(fields.get("observed_at")):
            missing.append("observed_at")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(sorted(missing))}")
        observed_at = parse_observed_at(fields["observed_at"])

        author = self.get_user(author_id)
        if not author:
            raise NotFound("Author not found")

        obs = Observation(
            author_id=author.id,
            author_name=author.name,
            observed_at=observed_at,
            status=ModerationStatus.PENDING,
            **values,
        )
        self.db.add(obs)
        self.db.commit()
        self.db.refresh(obs)
        return obs

    def set_observation_status(self, observation_id: int, status: Any) -> Observation:
        decision = _moderation_decision(status)
        obs = self.get_observation(observation_id)
        if not obs:
            raise NotFound("Observation not found")
        obs.status = decision
        self.db.commit()
        self.db.refresh(obs)
        return obs

    def list_observations(
        self,
        status: Optional[ModerationStatus] = None,
        author_id: Optional[int] = None,
    ) -> list[Observation]:
        q = self.db.query(Observation)
        if status is not None:
            q = q.filter(Observation.status == status)
        if author_id is not None:
            q = q.filter(Observation.author_id == author_id)
        return _newest_first(q, Observation).all()

    def list_pending_queue(self) -> list[Observation]:
        """Pending observations plus observations holding any pending comment, once each."""
        with_pending_comment = select(Comment.observation_id).where(
            Comment.status == ModerationStatus.PENDING
        )
        q = self.db.query(Observation).filter(
            (Observation.status == ModerationStatus.PENDING)
            | Observation.id.in_(with_pending_comment)
        )
        return _newest_first(q, Observation).all()

    def _require_approved(self, observation_id: int) -> Observation:
        obs = self.get_observation(observation_id)
        if not obs or obs.status != ModerationStatus.APPROVED:
            raise NotFound("Observation not found or not approved")
        return obs

    # ── Comments ──────────────────────────────────────────────

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        return self.db.get(Comment, comment_id)

    def create_comment(self, observation_id: int, author_id: int, text: Optional[str]) -> Comment:
        text = normalize_text(text)
        if not text:
            raise ValidationError("Comment text must not be empty")
        obs = self._require_approved(observation_id)
        author = self.get_user(author_id)
        if not author:
            raise NotFound("Author not found")

        comment = Comment(
            observation_id=obs.id,
            author_id=author.id,
            author_name=author.name,
            text=text,
            status=ModerationStatus.PENDING,
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def set_comment_status(self, comment_id: int, status: Any) -> Comment:
        decision = _moderation_decision(status)
        comment = self.get_comment(comment_id)
        if not comment:
            raise NotFound("Comment not found")
        comment.status = decision
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def comments_for(self, observation_ids: Iterable[int], approved_only: bool) -> dict[int, list[Comment]]:
        ids = list(observation_ids)
        grouped: dict[int, list[Comment]] = defaultdict(list)
        if not ids:
            return grouped
        q = self.db.query(Comment).filter(Comment.observation_id.in_(ids))
        if approved_only:
            q = q.filter(Comment.status == ModerationStatus.APPROVED)
        for comment in _newest_first(q, Comment):
            grouped[comment.observation_id].append(comment)
        return grouped

    # ── Votes ─────────────────────────────────────────────────

    def _upsert(self):
        if self.db.get_bind().dialect.name == "postgresql":
            return postgresql.insert
        return sqlite.insert

    def cast_vote(self, observation_id: int, voter_id: int, value: Any) -> Vote:
        """Insert the voter's vote or overwrite its value and timestamp."""
        try:
            value = VoteValue(value)
        except ValueError:
            raise ValidationError(f"Invalid vote: {value!r}")
        self._require_approved(observation_id)

        now = datetime.now(timezone.utc)
        stmt = self._upsert()(Vote).values(
            observation_id=observation_id,
            voter_id=voter_id,
            value=value,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["observation_id", "voter_id"],
            set_={"value": stmt.excluded.value, "created_at": stmt.excluded.created_at},
        )
        self.db.execute(stmt)
        self.db.commit()
        logger.debug("Vote %s by user %s on observation %s", value.value, voter_id, observation_id)

        return self.db.execute(
            select(Vote).where(Vote.observation_id == observation_id, Vote.voter_id == voter_id)
        ).scalar_one()

    def votes_for(self, observation_ids: Iterable[int]) -> dict[int, list[Vote]]:
        ids = list(observation_ids)
        grouped: dict[int, list[Vote]] = defaultdict(list)
        if not ids:
            return grouped
        q = self.db.query(Vote).filter(Vote.observation_id.in_(ids)).order_by(Vote.id.asc())
        for vote in q:
            grouped[vote.observation_id].append(vote)
        return grouped
