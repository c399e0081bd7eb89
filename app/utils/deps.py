# app/utils/deps.py
"""
FastAPI Dependencies for Authentication, Rate Limiting and Service Access.
This module focuses purely on dependency injection, delegating business logic to services.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.exceptions import InvalidToken, NotAuthenticated, RateLimitExceeded
from app.core.security import token_manager
from app.schemas.auth_schema import CurrentUser
from app.services.rate_limit_service import rate_limit_service
from app.services.vote_service import VoteService, vote_service

# Setup logging
logger = logging.getLogger(__name__)

# Bearer scheme; missing credentials are reported by get_current_user itself
bearer_scheme = HTTPBearer(auto_error=False, description="JWT Access Token")


# ================== CORE AUTHENTICATION DEPENDENCIES ==================
async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """
    Primary authentication dependency. Validates JWT and returns the caller.
    """
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated()

    try:
        payload = await token_manager.verify_token(credentials.credentials)
        user = CurrentUser(
            user_id=uuid.UUID(str(payload.get("userId") or payload.get("sub"))),
            email=payload.get("email"),
            name=payload.get("name"),
        )
    except InvalidToken:
        logger.warning(
            "Authentication failed",
            extra={
                "client_ip": request.client.host if request.client else "unknown",
                "user_agent": request.headers.get("user-agent", "unknown"),
            },
        )
        raise
    except ValueError:
        raise InvalidToken("Token user id is not a valid UUID.") from None

    request.state.user = user
    return user


# ================== RATE LIMITING DEPENDENCIES ==================


class RateLimitChecker:
    """
    Dependency for rate limiting. Delegates actual limiting logic to service layer.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 60,
        identifier_type: str = "ip",  # "ip" or "user"
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.identifier_type = identifier_type

    async def __call__(self, request: Request):
        """Check rate limits using service layer."""
        client_ip = request.client.host if request.client else "unknown"
        if self.identifier_type == "user":
            user = getattr(request.state, "user", None)
            identifier = f"user:{user.user_id}" if user else f"ip:{client_ip}"
        else:
            identifier = f"ip:{client_ip}"

        if await rate_limit_service.is_rate_limited(
            identifier, self.max_requests, self.window_seconds
        ):
            logger.warning(f"Rate limit exceeded for {identifier}")
            raise RateLimitExceeded(
                f"Rate limit exceeded. Maximum {self.max_requests} requests per {self.window_seconds} seconds.",
                headers={"Retry-After": str(self.window_seconds)},
            )


# Rate limiting instances for different use cases
rate_limit_api = RateLimitChecker(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    identifier_type="ip",
)
rate_limit_vote = RateLimitChecker(
    max_requests=settings.VOTE_RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.VOTE_RATE_LIMIT_WINDOW_SECONDS,
    identifier_type="user",
)


# ================== SERVICE DEPENDENCIES ==================


def get_vote_service() -> VoteService:
    """The vote service bound to the application database."""
    return vote_service


# ================== EXPORTS ==================

__all__ = [
    "get_current_user",
    "RateLimitChecker",
    "rate_limit_api",
    "rate_limit_vote",
    "get_vote_service",
]
