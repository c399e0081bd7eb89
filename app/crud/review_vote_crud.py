import logging
import uuid
from typing import Dict, List, Optional, Sequence

from sqlalchemy import insert, update
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func, delete

from app.models.review_vote_model import ReviewVote


logger = logging.getLogger(__name__)


class ReviewVoteRepository:
    """Data access for ``review_votes``. Methods never commit."""

    def __init__(self):
        self.model = ReviewVote
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def get(
        self, db: AsyncSession, *, user_id: uuid.UUID, review_id: uuid.UUID
    ) -> Optional[ReviewVote]:
        """Gets a specific vote by user and review ID."""
        statement = select(self.model).where(
            self.model.user_id == user_id, self.model.review_id == review_id
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_many_for_user(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        review_ids: Sequence[uuid.UUID],
    ) -> Dict[uuid.UUID, bool]:
        """Map review id to ``is_helpful`` for the user's votes among ``review_ids``."""
        statement = select(self.model.review_id, self.model.is_helpful).where(
            self.model.user_id == user_id, self.model.review_id.in_(review_ids)
        )
        result = await db.execute(statement)
        return {row.review_id: row.is_helpful for row in result}

    async def create(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        review_id: uuid.UUID,
        is_helpful: bool,
    ) -> None:
        """Creates a new vote."""
        statement = insert(self.model).values(
            review_id=review_id, user_id=user_id, is_helpful=is_helpful
        )
        await db.execute(statement)

    async def set_value(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        review_id: uuid.UUID,
        is_helpful: bool,
    ) -> None:
        """Changes an existing vote in place and refreshes its timestamp."""
        statement = (
            update(self.model)
            .where(self.model.user_id == user_id, self.model.review_id == review_id)
            .values(is_helpful=is_helpful, created_at=func.now())
        )
        await db.execute(statement)

    async def delete(
        self, db: AsyncSession, *, user_id: uuid.UUID, review_id: uuid.UUID
    ) -> None:
        """Deletes an existing vote."""
        statement = delete(self.model).where(
            self.model.user_id == user_id, self.model.review_id == review_id
        )
        await db.execute(statement)

    async def count_for_review(
        self, db: AsyncSession, *, review_id: uuid.UUID, is_helpful: bool
    ) -> int:
        statement = (
            select(func.count())
            .select_from(self.model)
            .where(
                self.model.review_id == review_id,
                self.model.is_helpful == is_helpful,
            )
        )
        return (await db.execute(statement)).scalar_one()

    async def list_for_review(
        self, db: AsyncSession, *, review_id: uuid.UUID
    ) -> List[ReviewVote]:
        statement = select(self.model).where(self.model.review_id == review_id)
        result = await db.execute(statement)
        return list(result.scalars().all())


# Singleton instance
review_vote_repository = ReviewVoteRepository()
