# app/schemas/vote_schema.py
"""
Vote schemas for request/response models.

JSON payloads use camelCase keys (``voteType``, ``helpfulVotes`` ...) to match
the web client; Python code uses the snake_case field names.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.review_vote_model import VoteType

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----VOTING SCHEMA-------
class VoteRequest(CamelModel):
    """Body of a vote submission."""

    vote_type: VoteType = Field(
        ..., description="Either 'helpful' or 'unhelpful'", examples=["helpful"]
    )


class VoteSummary(CamelModel):
    """Helpful and unhelpful totals for one review."""

    helpful_votes: int = Field(..., ge=0, description="Number of helpful votes")
    unhelpful_votes: int = Field(..., ge=0, description="Number of unhelpful votes")


class VoteState(CamelModel):
    """A review's vote totals plus the caller's own vote."""

    vote_summary: VoteSummary
    user_vote: Optional[VoteType] = Field(
        None, description="The caller's vote, null when they have not voted"
    )


class UserVotes(CamelModel):
    """The caller's vote on each requested review."""

    votes: Dict[uuid.UUID, Optional[VoteType]] = Field(default_factory=dict)


# ----ENVELOPES-------
class ResponseMeta(CamelModel):
    request_id: str = "unknown"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class ErrorDetail(CamelModel):
    code: str
    message: str


class ErrorResponse(CamelModel):
    success: bool = False
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


__all__ = [
    "VoteRequest",
    "VoteSummary",
    "VoteState",
    "UserVotes",
    "ResponseMeta",
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
]
