import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.config import settings
from app.core.exception_handler import build_meta
from app.core.exception_utils import raise_for_status
from app.core.exceptions import ReviewNotFound, ValidationError
from app.models.review_vote_model import VoteType
from app.schemas.auth_schema import CurrentUser
from app.schemas.vote_schema import (
    ApiResponse,
    UserVotes,
    VoteRequest,
    VoteState,
)
from app.services.vote_service import VoteService
from app.utils.deps import (
    get_current_user,
    get_vote_service,
    rate_limit_api,
    rate_limit_vote,
)


logger = logging.getLogger(__name__)

MAX_BATCH_REVIEW_IDS = 100

router = APIRouter(
    tags=["Review votes"],
    prefix=f"{settings.API_V1_STR}/reviews",
    # Authentication runs first so the user-keyed rate limiters can see the caller
    dependencies=[Depends(get_current_user)],
)


async def _ensure_review_exists(service: VoteService, review_id: uuid.UUID) -> None:
    exists = await service.review_exists(review_id=review_id)
    raise_for_status(
        condition=not exists,
        exception=ReviewNotFound,
        detail="Review not found",
    )


async def _vote_state(
    service: VoteService, review_id: uuid.UUID, user_vote: Optional[VoteType]
) -> VoteState:
    summary = await service.get_vote_summary(review_id=review_id)
    return VoteState(vote_summary=summary, user_vote=user_vote)


@router.get(
    "/votes",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserVotes],
    summary="Get my votes for several reviews",
    description="Annotate a list of reviews with the caller's vote in one round trip",
    dependencies=[Depends(rate_limit_api)],
)
async def get_my_votes(
    *,
    request: Request,
    review_ids: List[uuid.UUID] = Query(
        ...,
        alias="reviewIds",
        description="Review ids to look up (repeat the parameter)",
    ),
    current_user: CurrentUser = Depends(get_current_user),
    service: VoteService = Depends(get_vote_service),
):
    """Every requested id is present in ``votes``; unvoted reviews map to null."""
    raise_for_status(
        condition=len(review_ids) > MAX_BATCH_REVIEW_IDS,
        exception=ValidationError,
        detail=f"At most {MAX_BATCH_REVIEW_IDS} review ids can be requested at once.",
    )
    votes = await service.get_user_votes(
        review_ids=review_ids, user_id=current_user.user_id
    )
    return ApiResponse[UserVotes](data=UserVotes(votes=votes), meta=build_meta(request))


@router.post(
    "/{review_id}/vote",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[VoteState],
    summary="Vote on review",
    description="Mark a review helpful or unhelpful. Repeating the same vote removes it.",
    dependencies=[Depends(rate_limit_vote)],
)
async def vote_on_review(
    *,
    request: Request,
    review_id: uuid.UUID,
    vote_in: VoteRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: VoteService = Depends(get_vote_service),
):
    """
    Submit or change a vote.

    - no previous vote: the vote is recorded
    - same vote again: the vote is removed (``userVote`` becomes null)
    - the other vote: the vote is switched
    """
    await _ensure_review_exists(service, review_id)

    user_vote = await service.cast_vote(
        review_id=review_id,
        user_id=current_user.user_id,
        is_helpful=vote_in.vote_type.is_helpful,
    )
    state = await _vote_state(service, review_id, user_vote)

    logger.info(
        "Vote submitted successfully",
        extra={
            "review_id": str(review_id),
            "user_id": str(current_user.user_id),
            "vote_type": vote_in.vote_type.value,
            "helpful_votes": state.vote_summary.helpful_votes,
            "unhelpful_votes": state.vote_summary.unhelpful_votes,
        },
    )
    return ApiResponse[VoteState](
        data=state, message="Vote submitted successfully", meta=build_meta(request)
    )


@router.delete(
    "/{review_id}/vote",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[VoteState],
    summary="Remove vote",
    description="Remove the caller's vote from a review",
    dependencies=[Depends(rate_limit_vote)],
)
async def remove_vote(
    *,
    request: Request,
    review_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    service: VoteService = Depends(get_vote_service),
):
    """Remove the caller's vote. Succeeds even if there was nothing to remove."""
    await _ensure_review_exists(service, review_id)

    await service.remove_vote(review_id=review_id, user_id=current_user.user_id)
    state = await _vote_state(service, review_id, None)

    logger.info(
        "Vote removed successfully",
        extra={
            "review_id": str(review_id),
            "user_id": str(current_user.user_id),
            "helpful_votes": state.vote_summary.helpful_votes,
            "unhelpful_votes": state.vote_summary.unhelpful_votes,
        },
    )
    return ApiResponse[VoteState](
        data=state, message="Vote removed successfully", meta=build_meta(request)
    )


@router.get(
    "/{review_id}/vote",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[VoteState],
    summary="Get my vote",
    description="Current vote totals for a review and the caller's own vote",
    dependencies=[Depends(rate_limit_api)],
)
async def get_vote(
    *,
    request: Request,
    review_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    service: VoteService = Depends(get_vote_service),
):
    await _ensure_review_exists(service, review_id)

    user_vote = await service.get_user_vote(
        review_id=review_id, user_id=current_user.user_id
    )
    state = await _vote_state(service, review_id, user_vote)
    return ApiResponse[VoteState](data=state, meta=build_meta(request))
