import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import jwt, JWTError

from app.core.config import settings
from app.core.exceptions import (
    InternalServerError,
    InvalidToken,
    TokenExpired,
    TokenRevoked,
)
from app.db.redis_conn import redis_client

# --- Setup ---
logger = logging.getLogger(__name__)


class SecurityConfig:
    """Validates and holds all security-related configurations."""

    JWT_SECRET_KEY: str = settings.JWT_SECRET
    JWT_ALGORITHM: str = settings.JWT_ALGORITHM
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24
    TOKEN_ISSUER: str = settings.TOKEN_ISSUER
    TOKEN_AUDIENCE: str = settings.TOKEN_AUDIENCE
    ENABLE_TOKEN_BLACKLIST: bool = settings.ENABLE_TOKEN_BLACKLIST
    REDIS_FAIL_SECURE: bool = settings.REDIS_FAIL_SECURE

    @classmethod
    def validate(cls):
        if not cls.JWT_SECRET_KEY or len(cls.JWT_SECRET_KEY) < 32:
            raise ValueError(
                "JWT_SECRET must be configured and be at least 32 characters long."
            )


SecurityConfig.validate()


# --- Token Management (Infrastructure Only) ---
class TokenManager:
    """Verification of access tokens issued by the auth service.

    Tokens carry the user's database id in ``userId`` (mirrored in ``sub``)
    plus ``email`` and ``name``.
    """

    config = SecurityConfig

    def create_access_token(
        self,
        user_id: uuid.UUID,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Issues an access token. Used by tooling and tests."""
        now = datetime.now(timezone.utc)
        expire = now + (
            expires_delta or timedelta(hours=self.config.ACCESS_TOKEN_EXPIRE_HOURS)
        )

        claims = {
            "sub": str(user_id),
            "userId": str(user_id),
            "email": email,
            "name": name,
            "exp": expire,
            "iat": now,
            "iss": self.config.TOKEN_ISSUER,
            "aud": self.config.TOKEN_AUDIENCE,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(
            claims, self.config.JWT_SECRET_KEY, algorithm=self.config.JWT_ALGORITHM
        )

    async def verify_token(self, token: str) -> Dict[str, Any]:
        """Verifies and decodes a JWT."""
        if not token:
            raise InvalidToken("Token cannot be empty.")

        try:
            # Tokens from the account service carry no iss/aud; check them only when present
            unverified = jwt.get_unverified_claims(token)
            payload = jwt.decode(
                token,
                self.config.JWT_SECRET_KEY,
                algorithms=[self.config.JWT_ALGORITHM],
                audience=self.config.TOKEN_AUDIENCE if "aud" in unverified else None,
                issuer=self.config.TOKEN_ISSUER if "iss" in unverified else None,
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired() from None
        except JWTError as e:
            raise InvalidToken(f"Token is invalid: {e}") from e

        if not (payload.get("userId") or payload.get("sub")):
            raise InvalidToken("Token is missing the user id claim.")

        if self.config.ENABLE_TOKEN_BLACKLIST:
            jti = payload.get("jti")
            if jti and await self.is_token_revoked(jti):
                raise TokenRevoked()

        return payload

    async def is_token_revoked(self, jti: str) -> bool:
        """Checks if a token's JTI is blacklisted."""
        try:
            return await redis_client.exists(f"blacklist:{jti}") > 0
        except Exception:
            logger.error(
                "Failed to check token revocation status in Redis.", exc_info=True
            )
            if self.config.REDIS_FAIL_SECURE:
                raise InternalServerError("Token validation service unavailable")
            return False


# --- Singleton Instances ---
token_manager = TokenManager()


class SecurityHeaders:
    """Centralized definition of security headers for API responses."""

    @staticmethod
    def get_headers() -> Dict[str, str]:
        """Returns a dictionary of recommended security headers."""
        return {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "X-XSS-Protection": "1; mode=block",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
