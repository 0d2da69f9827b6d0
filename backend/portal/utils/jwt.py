"""JWT Session Token Validation"""
import jwt
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone

from ..config.settings import settings
from ..domain.enums import ActorKind
from ..domain.errors import AuthenticationError
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """HS256 session token validator"""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a session token

        Args:
            token: Bearer token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims, guaranteed to carry `sub` and `kind`

        Raises:
            AuthenticationError: If token is missing, invalid, or expired
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]}
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

        kind = claims.get("kind")
        if kind not in (ActorKind.CLIENT.value, ActorKind.EMPLOYEE.value):
            raise AuthenticationError("Token does not identify a client or employee")

        return claims

    def issue_token(
        self,
        user_id: str,
        kind: ActorKind,
        expires_minutes: Optional[int] = None
    ) -> str:
        """Issue a session token (used by seeding and tests)"""
        now = datetime.now(timezone.utc)
        minutes = expires_minutes if expires_minutes is not None else settings.jwt_expires_minutes
        payload = {
            "sub": user_id,
            "kind": kind.value,
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def issue_token(user_id: str, kind: ActorKind, expires_minutes: Optional[int] = None) -> str:
    """Issue a session token with the global validator"""
    return get_jwt_validator().issue_token(user_id, kind, expires_minutes)
