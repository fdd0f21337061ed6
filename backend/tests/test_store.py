"""Content store invariants: required fields, status domain, approved-only targets, vote upsert."""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from observach.database import SessionLocal
from observach.errors import Conflict, NotFound, ValidationError
from observach.models import Comment, ModerationStatus, Observation, Vote
from observach.store import ContentStore


@pytest.fixture
def author(make_user):
    return make_user("Ana")


@pytest.fixture
def approved_obs(store, author, observation_fields):
    obs = store.create_observation(author.id, observation_fields)
    return store.set_observation_status(obs.id, "approved")


class TestUsers:
    def test_email_is_normalized(self, store):
        user = store.create_user("  Bia ", "  Bia@Example.ORG ", "hash", "user")
        assert user.name == "Bia"
        assert user.email == "bia@example.org"
        assert store.get_user_by_email("BIA@example.org ").id == user.id

    def test_duplicate_email_conflicts_case_insensitively(self, store):
        store.create_user("Bia", "bia@example.org", "hash")
        with pytest.raises(Conflict):
            store.create_user("Other", " BIA@example.org", "hash")

    def test_unknown_role_rejected(self, store):
        with pytest.raises(ValidationError):
            store.create_user("Bia", "bia@example.org", "hash", "moderator")


class TestObservations:
    def test_created_pending_with_author_snapshot(self, store, author, observation_fields):
        obs = store.create_observation(author.id, observation_fields)
        assert obs.status == ModerationStatus.PENDING
        assert obs.author_name == "Ana"
        assert obs.group == "mammal"

    def test_observed_at_parsed_to_utc(self, store, author, observation_fields):
        obs = store.create_observation(author.id, {**observation_fields, "observed_at": "2024-05-01"})
        assert obs.observed_at.replace(tzinfo=timezone.utc) == datetime(2024, 5, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "field",
        ["popular_name", "scientific_name", "group", "location", "sex", "observed_at", "photo_ref"],
    )
    def test_required_fields(self, store, author, field, observation_fields):
        with pytest.raises(ValidationError, match=field):
            store.create_observation(author.id, {**observation_fields, field: "   "})

    def test_invalid_observed_at(self, store, author, observation_fields):
        with pytest.raises(ValidationError):
            store.create_observation(author.id, {**observation_fields, "observed_at": "yesterday"})

    def test_status_can_flip_repeatedly(self, store, author, observation_fields):
        obs = store.create_observation(author.id, observation_fields)
        assert store.set_observation_status(obs.id, "approved").status == ModerationStatus.APPROVED
        assert store.set_observation_status(obs.id, "approved").status == ModerationStatus.APPROVED
        assert store.set_observation_status(obs.id, "rejected").status == ModerationStatus.REJECTED
        assert store.set_observation_status(obs.id, "approved").status == ModerationStatus.APPROVED

    @pytest.mark.parametrize("status", ["pending", "deleted", None])
    def test_status_must_be_a_decision(self, store, author, status, observation_fields):
        obs = store.create_observation(author.id, observation_fields)
        with pytest.raises(ValidationError):
            store.set_observation_status(obs.id, status)
        assert store.get_observation(obs.id).status == ModerationStatus.PENDING

    def test_status_on_missing_observation(self, store):
        with pytest.raises(NotFound):
            store.set_observation_status(999, "approved")


class TestComments:
    def test_comment_starts_pending_and_trimmed(self, store, approved_obs, make_user):
        commenter = make_user("Caio")
        comment = store.create_comment(approved_obs.id, commenter.id, "  nice find  ")
        assert comment.status == ModerationStatus.PENDING
        assert comment.text == "nice find"
        assert comment.author_name == "Caio"

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_rejected(self, store, approved_obs, author, text):
        with pytest.raises(ValidationError):
            store.create_comment(approved_obs.id, author.id, text)

    @pytest.mark.parametrize("status", ["pending", "rejected"])
    def test_only_on_approved_observations(self, store, author, status, observation_fields):
        obs = store.create_observation(author.id, observation_fields)
        if status == "rejected":
            store.set_observation_status(obs.id, "rejected")
        with pytest.raises(NotFound):
            store.create_comment(obs.id, author.id, "hello")

    def test_missing_observation(self, store, author):
        with pytest.raises(NotFound):
            store.create_comment(12345, author.id, "hello")

    def test_comment_status_contract(self, store, approved_obs, author):
        comment = store.create_comment(approved_obs.id, author.id, "hello")
        assert store.set_comment_status(comment.id, "approved").status == ModerationStatus.APPROVED
        assert store.set_comment_status(comment.id, "rejected").status == ModerationStatus.REJECTED
        with pytest.raises(ValidationError):
            store.set_comment_status(comment.id, "pending")
        with pytest.raises(NotFound):
            store.set_comment_status(9999, "approved")

    def test_comments_and_votes_cascade_with_observation(self, store, db, approved_obs, author):
        store.create_comment(approved_obs.id, author.id, "hello")
        store.cast_vote(approved_obs.id, author.id, "coherent")

        db.delete(store.get_observation(approved_obs.id))
        db.commit()

        assert db.scalar(select(func.count(Comment.id))) == 0
        assert db.scalar(select(func.count(Vote.id))) == 0


class TestVotes:
    def test_second_vote_replaces_first(self, store, db, approved_obs, make_user):
        voter = make_user("Dora")
        first = store.cast_vote(approved_obs.id, voter.id, "coherent")
        second = store.cast_vote(approved_obs.id, voter.id, "incoherent")

        assert second.id == first.id
        assert second.value.value == "incoherent"
        rows = db.scalars(
            select(Vote).where(Vote.observation_id == approved_obs.id, Vote.voter_id == voter.id)
        ).all()
        assert len(rows) == 1

    def test_repeated_votes_keep_one_row_with_latest_value(self, store, db, approved_obs, make_user):
        voter = make_user()
        for value in ["coherent", "coherent", "incoherent", "coherent"]:
            store.cast_vote(approved_obs.id, voter.id, value)
        votes = store.votes_for([approved_obs.id])[approved_obs.id]
        assert [(v.voter_id, v.value.value) for v in votes] == [(voter.id, "coherent")]

    def test_vote_timestamp_refreshed(self, store, db, approved_obs, author):
        first = store.cast_vote(approved_obs.id, author.id, "coherent")
        db.execute(
            Vote.__table__.update()
            .where(Vote.id == first.id)
            .values(created_at=datetime(2000, 1, 1, tzinfo=timezone.utc))
        )
        db.commit()
        second = store.cast_vote(approved_obs.id, author.id, "coherent")
        assert second.created_at.year != 2000

    def test_concurrent_votes_from_separate_sessions_keep_one_row(self, db, approved_obs, make_user):
        voter = make_user("Edu")
        values = ["coherent", "incoherent"] * 4

        def _vote(value):
            session = SessionLocal()
            try:
                return ContentStore(session).cast_vote(approved_obs.id, voter.id, value).value.value
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(_vote, values))

        assert set(results) <= set(values)
        rows = db.scalars(
            select(Vote).where(Vote.observation_id == approved_obs.id, Vote.voter_id == voter.id)
        ).all()
        assert len(rows) == 1
        assert rows[0].value.value in values

    def test_invalid_value(self, store, approved_obs, author):
        with pytest.raises(ValidationError):
            store.cast_vote(approved_obs.id, author.id, "maybe")

    def test_not_on_pending_or_missing(self, store, author, observation_fields):
        pending = store.create_observation(author.id, observation_fields)
        with pytest.raises(NotFound):
            store.cast_vote(pending.id, author.id, "coherent")
        with pytest.raises(NotFound):
            store.cast_vote(4242, author.id, "coherent")


class TestPendingQueue:
    def test_union_without_duplicates(self, store, author, observation_fields):
        pending = store.create_observation(author.id, observation_fields)
        approved_with_comment = store.create_observation(author.id, observation_fields)
        store.set_observation_status(approved_with_comment.id, "approved")
        store.create_comment(approved_with_comment.id, author.id, "late comment")
        quiet = store.create_observation(author.id, observation_fields)
        store.set_observation_status(quiet.id, "approved")

        # pending observation that also carries a pending comment
        both = store.create_observation(author.id, observation_fields)
        store.set_observation_status(both.id, "approved")
        store.create_comment(both.id, author.id, "one")
        store.create_comment(both.id, author.id, "two")
        store.get_observation(both.id).status = ModerationStatus.PENDING
        store.db.commit()

        ids = [obs.id for obs in store.list_pending_queue()]
        assert sorted(ids) == sorted([pending.id, approved_with_comment.id, both.id])
        assert len(ids) == len(set(ids))

    def test_ties_keep_insertion_order(self, store, db, author, observation_fields):
        created = [store.create_observation(author.id, observation_fields) for _ in range(3)]
        same_instant = datetime(2024, 1, 1, tzinfo=timezone.utc)
        db.execute(Observation.__table__.update().values(created_at=same_instant))
        db.commit()

        ids = [obs.id for obs in store.list_pending_queue()]
        assert ids == [obs.id for obs in created]
