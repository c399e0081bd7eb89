import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from app.crud.review_crud import review_repository
from app.crud.review_vote_crud import review_vote_repository
from app.models.review_vote_model import ReviewVote

# Mark all tests in this file as async
pytestmark = pytest.mark.asyncio


# ==================== REVIEW REPOSITORY ====================


async def test_create_review_defaults(database, review):
    """
    Test case: A new review starts with a zero helpful counter.
    - GIVEN a review created through the repository.
    - WHEN it is read back.
    - THEN it has an id, timestamps and zero helpful votes.
    """
    async with database.session() as session:
        stored = await review_repository.get(session, obj_id=review.id)

    assert stored is not None
    assert stored.helpful_votes == 0
    assert stored.created_at is not None
    assert stored.dealership_id == review.dealership_id


async def test_lock_for_vote_reports_missing_review(database, review):
    async with database.transaction() as session:
        assert await review_repository.lock_for_vote(session, obj_id=review.id) is True
        assert await review_repository.lock_for_vote(session, obj_id=uuid.uuid4()) is False


async def test_adjust_helpful_votes_applies_delta(database, review):
    async with database.transaction() as session:
        await review_repository.adjust_helpful_votes(session, obj_id=review.id, delta=1)
        await review_repository.adjust_helpful_votes(session, obj_id=review.id, delta=1)
        await review_repository.adjust_helpful_votes(session, obj_id=review.id, delta=-1)
        await review_repository.adjust_helpful_votes(session, obj_id=review.id, delta=0)

    async with database.session() as session:
        assert await review_repository.get_vote_counts(session, obj_id=review.id) == (1, 0)


async def test_helpful_counter_cannot_go_negative(database, review):
    """The check constraint rejects a counter below zero."""
    with pytest.raises(IntegrityError):
        async with database.transaction() as session:
            await review_repository.adjust_helpful_votes(
                session, obj_id=review.id, delta=-1
            )


async def test_get_vote_counts(database, review):
    """
    Test case: Counts combine the cached and the live totals.
    - GIVEN one helpful and two unhelpful vote rows plus a matching counter.
    - WHEN the counts are read.
    - THEN helpful comes from the counter and unhelpful from the rows.
    """
    async with database.transaction() as session:
        await review_vote_repository.create(
            session, user_id=uuid.uuid4(), review_id=review.id, is_helpful=True
        )
        for _ in range(2):
            await review_vote_repository.create(
                session, user_id=uuid.uuid4(), review_id=review.id, is_helpful=False
            )
        await review_repository.adjust_helpful_votes(session, obj_id=review.id, delta=1)

    async with database.session() as session:
        assert await review_repository.get_vote_counts(session, obj_id=review.id) == (1, 2)
        assert await review_repository.get_vote_counts(session, obj_id=uuid.uuid4()) is None


async def test_exists(database, review):
    async with database.session() as session:
        assert await review_repository.exists(session, obj_id=review.id) is True
        assert await review_repository.exists(session, obj_id=uuid.uuid4()) is False


async def test_delete_review(database, make_review):
    review = await make_review()

    async with database.transaction() as session:
        await review_repository.delete(session, obj_id=review.id)

    async with database.session() as session:
        assert await review_repository.get(session, obj_id=review.id) is None


# ==================== REVIEW VOTE REPOSITORY ====================


async def test_create_and_get_vote(database, review, user_id):
    async with database.transaction() as session:
        await review_vote_repository.create(
            session, user_id=user_id, review_id=review.id, is_helpful=True
        )

    async with database.session() as session:
        vote = await review_vote_repository.get(
            session, user_id=user_id, review_id=review.id
        )

    assert vote is not None
    assert vote.is_helpful is True
    assert vote.created_at is not None


async def test_duplicate_vote_is_rejected(database, review, user_id):
    """
    Test case: The composite key allows one vote per user per review.
    - GIVEN an existing vote.
    - WHEN a second row for the same pair is inserted.
    - THEN the store raises IntegrityError and the first vote survives.
    """
    async with database.transaction() as session:
        await review_vote_repository.create(
            session, user_id=user_id, review_id=review.id, is_helpful=True
        )

    with pytest.raises(IntegrityError):
        async with database.transaction() as session:
            await review_vote_repository.create(
                session, user_id=user_id, review_id=review.id, is_helpful=False
            )

    async with database.session() as session:
        votes = await review_vote_repository.list_for_review(session, review_id=review.id)
    assert [(v.user_id, v.is_helpful) for v in votes] == [(user_id, True)]


async def test_set_value_changes_vote_in_place(database, review, user_id):
    async with database.transaction() as session:
        await review_vote_repository.create(
            session, user_id=user_id, review_id=review.id, is_helpful=True
        )
    async with database.transaction() as session:
        await review_vote_repository.set_value(
            session, user_id=user_id, review_id=review.id, is_helpful=False
        )

    async with database.session() as session:
        vote = await review_vote_repository.get(
            session, user_id=user_id, review_id=review.id
        )
        unhelpful = await review_vote_repository.count_for_review(
            session, review_id=review.id, is_helpful=False
        )

    assert vote.is_helpful is False
    assert unhelpful == 1


async def test_delete_vote(database, review, user_id):
    async with database.transaction() as session:
        await review_vote_repository.create(
            session, user_id=user_id, review_id=review.id, is_helpful=False
        )
    async with database.transaction() as session:
        await review_vote_repository.delete(session, user_id=user_id, review_id=review.id)

    async with database.session() as session:
        assert (
            await review_vote_repository.get(session, user_id=user_id, review_id=review.id)
            is None
        )


async def test_get_many_for_user(database, make_review, user_id):
    """Only the given user's votes among the requested reviews are returned."""
    helpful_review, unhelpful_review, untouched_review = [
        await make_review() for _ in range(3)
    ]
    async with database.transaction() as session:
        await review_vote_repository.create(
            session, user_id=user_id, review_id=helpful_review.id, is_helpful=True
        )
        await review_vote_repository.create(
            session, user_id=user_id, review_id=unhelpful_review.id, is_helpful=False
        )
        await review_vote_repository.create(
            session, user_id=uuid.uuid4(), review_id=untouched_review.id, is_helpful=True
        )

    async with database.session() as session:
        votes = await review_vote_repository.get_many_for_user(
            session,
            user_id=user_id,
            review_ids=[helpful_review.id, unhelpful_review.id, untouched_review.id],
        )

    assert votes == {helpful_review.id: True, unhelpful_review.id: False}


async def test_set_value_refreshes_created_at(database, review, user_id):
    """
    Test case: Changing a vote moves its timestamp forward.
    - GIVEN a vote recorded long ago.
    - WHEN its value is changed.
    - THEN created_at is refreshed to the time of the change.
    """
    recorded_at = datetime(2020, 1, 1, tzinfo=timezone.utc)
    async with database.transaction() as session:
        await session.execute(
            insert(ReviewVote).values(
                review_id=review.id,
                user_id=user_id,
                is_helpful=True,
                created_at=recorded_at,
            )
        )

    async with database.session() as session:
        before = await review_vote_repository.get(
            session, user_id=user_id, review_id=review.id
        )
    assert before.created_at.replace(tzinfo=None) == recorded_at.replace(tzinfo=None)

    async with database.transaction() as session:
        await review_vote_repository.set_value(
            session, user_id=user_id, review_id=review.id, is_helpful=False
        )

    async with database.session() as session:
        after = await review_vote_repository.get(
            session, user_id=user_id, review_id=review.id
        )
    assert after.is_helpful is False
    assert after.created_at.replace(tzinfo=None) > recorded_at.replace(tzinfo=None)
