import uuid
from typing import TYPE_CHECKING, List, Optional
from datetime import datetime, timezone

from sqlmodel import (
    SQLModel,
    Field,
    Relationship,
    Column,
    String,
    Integer,
    DateTime,
    Text,
)
from sqlalchemy import Index, UniqueConstraint, CheckConstraint, func

if TYPE_CHECKING:
    from app.models.review_vote_model import ReviewVote


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewBase(SQLModel):
    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="Rating from 1 to 5 stars",
        schema_extra={"example": 4},
    )
    title: str = Field(
        min_length=3,
        max_length=255,
        description="Review title/summary",
        schema_extra={"example": "Plates arrived in a week"},
    )
    content: str = Field(
        ...,
        min_length=10,
        max_length=2000,
        description="Detailed review text",
        schema_extra={"example": "Friendly staff and the paperwork was quick..."},
    )


class Review(ReviewBase, table=True):
    """A user's review of a dealership.

    Owned by the review-authoring side of the application; the voting code only
    reads ``id`` and maintains ``helpful_votes``. There is deliberately no
    unhelpful counter column: unhelpful totals are always counted from
    ``review_votes`` on read.
    """

    __tablename__ = "reviews"
    __table_args__ = (
        # One review per user per dealership
        UniqueConstraint("user_id", "dealership_id", name="uq_user_dealership_review"),
        Index("idx_review_dealership_id", "dealership_id"),
        Index("idx_review_user_id", "user_id"),
        Index("idx_review_created_at", "created_at"),
        Index("idx_review_helpful", "helpful_votes"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),
        CheckConstraint("helpful_votes >= 0", name="ck_review_helpful_positive"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="Unique identifier for the review",
    )

    title: str = Field(sa_column=Column(String(255), nullable=False))
    content: str = Field(sa_column=Column(Text, nullable=False))

    dealership_id: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Google place id of the reviewed dealership",
    )
    user_id: uuid.UUID = Field(nullable=False, description="ID of the reviewer")

    # Denormalized count of helpful rows in review_votes
    helpful_votes: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default="0"),
        description="Number of helpful votes",
    )

    created_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
        description="Review creation timestamp",
    )
    updated_at: Optional[datetime] = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        ),
        description="Last update timestamp",
    )

    votes: List["ReviewVote"] = Relationship(
        back_populates="review",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "lazy": "raise"},
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, dealership_id={self.dealership_id}, helpful_votes={self.helpful_votes})>"
