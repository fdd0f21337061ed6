"""Moderation engine: visibility views, the admin gate and bundle assembly.

Every call takes an explicit :class:`Actor` describing who is asking. The
engine never consults request-global state; the HTTP layer resolves the actor
from the bearer token and passes it in.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from observach.errors import Forbidden
from observach.models import Comment, ModerationStatus, Observation, Role, Vote, VoteValue
from observach.schemas import CommentOut, ObservationBundle, VoteAggregate
from observach.store import ContentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Verified identity of the user making a request."""

    id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_admin(actor: Actor) -> Actor:
    """The single authorization predicate for moderation operations."""
    if not actor.is_admin:
        raise Forbidden("Admin access required")
    return actor


def _utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


def aggregate_votes(votes: Iterable[Vote], requester_id: int) -> tuple[VoteAggregate, Optional[str]]:
    """Partition votes into voter-id lists and pick out the requester's own vote."""
    aggregate = VoteAggregate()
    my_vote = None
    for vote in votes:
        value = VoteValue(vote.value)
        if value == VoteValue.COHERENT:
            aggregate.coherent.append(vote.voter_id)
        else:
            aggregate.incoherent.append(vote.voter_id)
        if vote.voter_id == requester_id:
            my_vote = value.value
    return aggregate, my_vote


def build_bundle(
    obs: Observation,
    comments: Iterable[Comment],
    votes: Iterable[Vote],
    requester_id: int,
) -> ObservationBundle:
    aggregate, my_vote = aggregate_votes(votes, requester_id)
    return ObservationBundle(
        id=obs.id,
        author_id=obs.author_id,
        author_name=obs.author_name,
        photo_ref=obs.photo_ref,
        popular_name=obs.popular_name,
        scientific_name=obs.scientific_name,
        group=obs.group,
        location=obs.location,
        sex=obs.sex,
        observed_at=_utc(obs.observed_at),
        status=ModerationStatus(obs.status).value,
        created_at=_utc(obs.created_at),
        comments=[
            CommentOut(
                id=c.id,
                author_id=c.author_id,
                author_name=c.author_name,
                text=c.text,
                status=ModerationStatus(c.status).value,
                created_at=_utc(c.created_at),
            )
            for c in comments
        ],
        votes=aggregate,
        my_vote=my_vote,
    )


class ModerationEngine:
    """Decision logic on top of a :class:`ContentStore`."""

    def __init__(self, store: ContentStore):
        self.store = store

    def _bundles(
        self,
        observations: list[Observation],
        actor: Actor,
        approved_comments_only: bool,
    ) -> list[ObservationBundle]:
        ids = [obs.id for obs in observations]
        comments = self.store.comments_for(ids, approved_only=approved_comments_only)
        votes = self.store.votes_for(ids)
        return [
            build_bundle(obs, comments.get(obs.id, []), votes.get(obs.id, []), actor.id)
            for obs in observations
        ]

    # ── Views ─────────────────────────────────────────────────

    def public_view(self, actor: Actor) -> list[ObservationBundle]:
        """Approved observations with their approved comments only."""
        observations = self.store.list_observations(status=ModerationStatus.APPROVED)
        return self._bundles(observations, actor, approved_comments_only=True)

    def mine_view(self, actor: Actor) -> list[ObservationBundle]:
        """The actor's own observations in any status.

        Comments are limited to approved ones, except for admins, who see
        every comment on their own posts.
        """
        observations = self.store.list_observations(author_id=actor.id)
        return self._bundles(observations, actor, approved_comments_only=not actor.is_admin)

    def pending_queue(self, actor: Actor) -> list[ObservationBundle]:
        """Admin worklist: pending posts and posts carrying a pending comment."""
        require_admin(actor)
        observations = self.store.list_pending_queue()
        return self._bundles(observations, actor, approved_comments_only=False)

    # ── Mutations ─────────────────────────────────────────────

    def submit_observation(self, actor: Actor, fields: Mapping[str, Any]) -> Observation:
        obs = self.store.create_observation(actor.id, fields)
        logger.info("Observation %s submitted by user %s", obs.id, actor.id)
        return obs

    def comment(self, actor: Actor, observation_id: int, text: Optional[str]) -> Comment:
        comment = self.store.create_comment(observation_id, actor.id, text)
        logger.info("Comment %s on observation %s awaits moderation", comment.id, observation_id)
        return comment

    def vote(self, actor: Actor, observation_id: int, value: Any) -> Vote:
        return self.store.cast_vote(observation_id, actor.id, value)

    def set_observation_status(self, actor: Actor, observation_id: int, status: Any) -> Observation:
        require_admin(actor)
        obs = self.store.set_observation_status(observation_id, status)
        logger.info("Admin %s set observation %s to %s", actor.id, obs.id, obs.status.value)
        return obs

    def set_comment_status(self, actor: Actor, comment_id: int, status: Any) -> Comment:
        require_admin(actor)
        comment = self.store.set_comment_status(comment_id, status)
        logger.info("Admin %s set comment %s to %s", actor.id, comment.id, comment.status.value)
        return comment
