import logging
import uuid
from typing import Optional, Any, TypeVar, Generic, Tuple
from abc import ABC, abstractmethod

from sqlalchemy import false, update
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func, delete

from app.models.review_model import Review
from app.models.review_vote_model import ReviewVote


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository providing consistent interface for database operations.

    Repositories never commit: the caller owns the transaction.
    """

    def __init__(self, model: type[T]):
        self.model = model

    @abstractmethod
    async def get(self, db: AsyncSession, *, obj_id: Any) -> Optional[T]:
        """Get entity by its primary key."""
        pass

    @abstractmethod
    async def create(self, db: AsyncSession, *, obj_in: Any) -> T:
        """Create a new entity."""
        pass

    @abstractmethod
    async def delete(self, db: AsyncSession, *, obj_id: Any) -> None:
        """Delete an entity by its primary key."""
        pass


class ReviewRepository(BaseRepository[Review]):
    """Data access for the ``reviews`` table."""

    def __init__(self):
        super().__init__(Review)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def get(self, db: AsyncSession, *, obj_id: uuid.UUID) -> Optional[Review]:
        """Get a review by its id"""
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def exists(self, db: AsyncSession, *, obj_id: uuid.UUID) -> bool:
        statement = select(self.model.id).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.first() is not None

    async def lock_for_vote(self, db: AsyncSession, *, obj_id: uuid.UUID) -> bool:
        """Row-lock a review for the rest of the transaction.

        Concurrent vote writers on the same review queue up behind this lock.
        Dialects without row locks (SQLite) ignore FOR UPDATE.
        Returns False when the review does not exist.
        """
        statement = (
            select(self.model.id).where(self.model.id == obj_id).with_for_update()
        )
        result = await db.execute(statement)
        return result.first() is not None

    async def adjust_helpful_votes(
        self, db: AsyncSession, *, obj_id: uuid.UUID, delta: int
    ) -> None:
        """Apply ``delta`` to the cached helpful counter in SQL."""
        if delta == 0:
            return
        statement = (
            update(self.model)
            .where(self.model.id == obj_id)
            .values(helpful_votes=self.model.helpful_votes + delta)
        )
        await db.execute(statement)
        self._logger.debug(
            "Helpful counter adjusted", extra={"review_id": str(obj_id), "delta": delta}
        )

    async def get_vote_counts(
        self, db: AsyncSession, *, obj_id: uuid.UUID
    ) -> Optional[Tuple[int, int]]:
        """Return ``(helpful, unhelpful)`` for a review, or None if it is missing.

        Helpful comes from the cached column; unhelpful is always a fresh
        correlated count over ``review_votes``.
        """
        unhelpful_count = (
            select(func.count())
            .select_from(ReviewVote)
            .where(
                ReviewVote.review_id == self.model.id,
                ReviewVote.is_helpful == false(),
            )
            .correlate(self.model)
            .scalar_subquery()
        )
        statement = select(
            self.model.helpful_votes,
            func.coalesce(unhelpful_count, 0).label("unhelpful_votes"),
        ).where(self.model.id == obj_id)

        row = (await db.execute(statement)).first()
        if row is None:
            return None
        return int(row.helpful_votes), int(row.unhelpful_votes)

    async def create(self, db: AsyncSession, *, obj_in: Review) -> Review:
        """Create a review"""
        db.add(obj_in)
        await db.flush()
        await db.refresh(obj_in)
        self._logger.info(f"Review created: {obj_in.id}")
        return obj_in

    async def delete(self, db: AsyncSession, *, obj_id: uuid.UUID) -> None:
        """Delete a review"""
        statement = delete(self.model).where(self.model.id == obj_id)
        await db.execute(statement)
        self._logger.info(f"Review hard deleted: {obj_id}")


review_repository = ReviewRepository()
