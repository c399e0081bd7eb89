import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlmodel import SQLModel, Field, Relationship, Column, DateTime
from sqlalchemy import ForeignKey, Index, Uuid, func

if TYPE_CHECKING:
    from .review_model import Review


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VoteType(str, Enum):
    """A user's judgment on a review. ``None`` stands for "no vote"."""

    HELPFUL = "helpful"
    UNHELPFUL = "unhelpful"

    @classmethod
    def from_is_helpful(cls, is_helpful: bool) -> "VoteType":
        return cls.HELPFUL if is_helpful else cls.UNHELPFUL

    @property
    def is_helpful(self) -> bool:
        return self is VoteType.HELPFUL


class ReviewVote(SQLModel, table=True):
    __tablename__ = "review_votes"
    __table_args__ = (Index("idx_review_votes_user_id", "user_id"),)

    # The composite primary key keeps one vote per user per review
    review_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid,
            ForeignKey("reviews.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    user_id: uuid.UUID = Field(primary_key=True)
    is_helpful: bool = Field(nullable=False)

    # Refreshed whenever the vote value changes, not only on insert
    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )

    review: Optional["Review"] = Relationship(back_populates="votes")

    @property
    def vote_type(self) -> VoteType:
        return VoteType.from_is_helpful(self.is_helpful)

    def __repr__(self) -> str:
        return f"<ReviewVote(review_id={self.review_id}, user_id={self.user_id}, is_helpful={self.is_helpful})>"
