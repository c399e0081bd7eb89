import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence

from app.core.exception_utils import raise_for_status
from app.core.exceptions import AppException, ReviewNotFound, ValidationError
from app.crud.review_crud import review_repository
from app.crud.review_vote_crud import review_vote_repository
from app.db.session import Database, db as default_database
from app.models.review_vote_model import VoteType
from app.schemas.vote_schema import VoteSummary

logger = logging.getLogger(__name__)


class VoteAction(str, Enum):
    CREATED = "create"
    CHANGED = "update"
    REMOVED = "remove"


@dataclass(frozen=True)
class VoteTransition:
    action: VoteAction
    result: Optional[VoteType]
    helpful_delta: int


def resolve_vote_transition(
    existing: Optional[VoteType], requested: VoteType
) -> VoteTransition:
    """Decide what a vote request does given the user's current vote.

    No vote yet creates one, the same value again removes it (toggle-off) and
    the other value replaces it. ``helpful_delta`` is the change to apply to
    the review's cached helpful counter.
    """
    if existing is None:
        return VoteTransition(
            action=VoteAction.CREATED,
            result=requested,
            helpful_delta=1 if requested.is_helpful else 0,
        )
    if existing is requested:
        return VoteTransition(
            action=VoteAction.REMOVED,
            result=None,
            helpful_delta=-1 if existing.is_helpful else 0,
        )
    return VoteTransition(
        action=VoteAction.CHANGED,
        result=requested,
        helpful_delta=1 if requested.is_helpful else -1,
    )


class VoteService:
    """
    Records helpful/unhelpful votes on reviews and keeps ``reviews.helpful_votes``
    equal to the number of helpful vote rows.

    The service keeps no state between calls. Every write runs in a single
    store transaction; a failure rolls the whole operation back and the
    original error propagates to the caller.
    """

    def __init__(self, database: Optional[Database] = None):
        self.database = database or default_database
        self.review_repository = review_repository
        self.review_vote_repository = review_vote_repository
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ======= WRITE OPERATIONS =======
    async def cast_vote(
        self, *, review_id: uuid.UUID, user_id: uuid.UUID, is_helpful: bool
    ) -> Optional[VoteType]:
        """
        Submit a vote and return the user's resulting vote.

        Re-submitting the value the user already has removes the vote, so the
        result is ``None`` in that case.
        """
        if not isinstance(is_helpful, bool):
            raise ValidationError(
                f"Vote value must be a boolean, got {type(is_helpful).__name__}."
            )
        requested = VoteType.from_is_helpful(is_helpful)

        try:
            async with self.database.transaction() as session:
                review_found = await self.review_repository.lock_for_vote(
                    session, obj_id=review_id
                )
                raise_for_status(
                    condition=not review_found,
                    exception=ReviewNotFound,
                    review_id=review_id,
                )

                existing_vote = await self.review_vote_repository.get(
                    session, user_id=user_id, review_id=review_id
                )
                existing = existing_vote.vote_type if existing_vote else None
                transition = resolve_vote_transition(existing, requested)

                if transition.action is VoteAction.CREATED:
                    await self.review_vote_repository.create(
                        session,
                        user_id=user_id,
                        review_id=review_id,
                        is_helpful=is_helpful,
                    )
                elif transition.action is VoteAction.REMOVED:
                    await self.review_vote_repository.delete(
                        session, user_id=user_id, review_id=review_id
                    )
                else:
                    await self.review_vote_repository.set_value(
                        session,
                        user_id=user_id,
                        review_id=review_id,
                        is_helpful=is_helpful,
                    )

                await self.review_repository.adjust_helpful_votes(
                    session, obj_id=review_id, delta=transition.helpful_delta
                )
        except AppException:
            raise
        except Exception:
            self._logger.error(
                "Error updating vote",
                exc_info=True,
                extra={
                    "review_id": str(review_id),
                    "user_id": str(user_id),
                    "is_helpful": is_helpful,
                },
            )
            raise

        self._logger.info(
            "Vote updated successfully",
            extra={
                "review_id": str(review_id),
                "user_id": str(user_id),
                "is_helpful": is_helpful,
                "action": transition.action.value,
            },
        )
        return transition.result

    async def remove_vote(self, *, review_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Remove the user's vote if there is one. Calling it again is a no-op."""
        was_helpful: Optional[bool] = None
        try:
            async with self.database.transaction() as session:
                await self.review_repository.lock_for_vote(session, obj_id=review_id)
                existing_vote = await self.review_vote_repository.get(
                    session, user_id=user_id, review_id=review_id
                )
                if existing_vote is None:
                    return

                was_helpful = existing_vote.is_helpful
                await self.review_vote_repository.delete(
                    session, user_id=user_id, review_id=review_id
                )
                await self.review_repository.adjust_helpful_votes(
                    session, obj_id=review_id, delta=-1 if was_helpful else 0
                )
        except Exception:
            self._logger.error(
                "Error removing vote",
                exc_info=True,
                extra={"review_id": str(review_id), "user_id": str(user_id)},
            )
            raise

        self._logger.info(
            "Vote removed successfully",
            extra={
                "review_id": str(review_id),
                "user_id": str(user_id),
                "was_helpful": was_helpful,
            },
        )

    # ======= READ OPERATIONS =======
    async def get_user_vote(
        self, *, review_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[VoteType]:
        """The user's current vote on a review, or None if they have not voted."""
        async with self.database.session() as session:
            vote = await self.review_vote_repository.get(
                session, user_id=user_id, review_id=review_id
            )
        return vote.vote_type if vote else None

    async def get_vote_summary(self, *, review_id: uuid.UUID) -> VoteSummary:
        """Helpful count from the cached column, unhelpful count freshly counted."""
        async with self.database.session() as session:
            counts = await self.review_repository.get_vote_counts(
                session, obj_id=review_id
            )
        raise_for_status(
            condition=counts is None,
            exception=ReviewNotFound,
            review_id=review_id,
        )
        helpful_votes, unhelpful_votes = counts
        return VoteSummary(helpful_votes=helpful_votes, unhelpful_votes=unhelpful_votes)

    async def get_user_votes(
        self, *, review_ids: Sequence[uuid.UUID], user_id: uuid.UUID
    ) -> Dict[uuid.UUID, Optional[VoteType]]:
        """The user's vote for every review in ``review_ids`` in one query.

        Every requested id is present in the result; ids without a vote map
        to None.
        """
        if not review_ids:
            return {}

        unique_ids = list(dict.fromkeys(review_ids))
        async with self.database.session() as session:
            votes = await self.review_vote_repository.get_many_for_user(
                session, user_id=user_id, review_ids=unique_ids
            )

        self._logger.debug(
            f"Batch vote lookup: {len(votes)} of {len(unique_ids)} reviews voted",
            extra={"user_id": str(user_id)},
        )
        return {
            review_id: (
                VoteType.from_is_helpful(votes[review_id])
                if review_id in votes
                else None
            )
            for review_id in unique_ids
        }

    async def review_exists(self, *, review_id: uuid.UUID) -> bool:
        """Whether the review exists. Store failures propagate."""
        async with self.database.session() as session:
            return await self.review_repository.exists(session, obj_id=review_id)


vote_service = VoteService()
