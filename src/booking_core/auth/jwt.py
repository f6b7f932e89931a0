"""JWT token handling.

The booking service does not issue credentials itself; it only needs a user
id (``sub``) and a ``role`` claim. Token creation is kept for tooling and
tests.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from booking_core.config import JWTSettings, get_settings
from booking_core.domain import Principal, Role
from booking_core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class TokenPayload:
    """JWT token payload structure."""

    def __init__(
        self,
        user_id: str,
        role: str,
        exp: Optional[int] = None,
        iat: Optional[int] = None,
        **kwargs: Any,
    ):
        self.user_id = user_id
        self.role = role
        self.exp = exp
        self.iat = iat or int(time.time())
        self.extra_claims = kwargs

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JWT encoding."""
        payload = {
            "sub": self.user_id,
            "role": self.role,
            "iat": self.iat,
        }
        if self.exp is not None:
            payload["exp"] = self.exp
        payload.update(self.extra_claims)
        return payload

    @classmethod
    def from_dict(cls, claims: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from decoded JWT claims."""
        return cls(
            user_id=claims.get("sub", ""),
            role=claims.get("role", ""),
            exp=claims.get("exp"),
            iat=claims.get("iat"),
            **{k: v for k, v in claims.items() if k not in ["sub", "role", "exp", "iat"]},
        )

    def to_principal(self) -> Principal:
        """Map the claims onto the caller identity used by the services."""
        if not self.user_id:
            raise AuthenticationError("Token has no subject")
        try:
            role = Role(self.role)
        except ValueError as e:
            raise AuthenticationError(f"Unknown role in token: {self.role!r}") from e
        return Principal(user_id=self.user_id, role=role)


class JWTTokenHandler:
    """Handler for JWT token generation and validation."""

    def __init__(self, config: Optional[JWTSettings] = None):
        self.config = config or get_settings().jwt
        self.secret_key = self.config.secret_key
        self.algorithm = self.config.algorithm

    def encode_token(self, payload: TokenPayload) -> str:
        """Encode a token payload into a JWT token."""
        try:
            token = jwt.encode(payload.to_dict(), self.secret_key, algorithm=self.algorithm)
        except JWTError as e:
            logger.error(f"Error encoding JWT token: {e}")
            raise AuthenticationError("Failed to generate token") from e
        logger.debug(f"Generated JWT token for user: {payload.user_id}")
        return token

    def decode_token(self, token: str, verify_exp: bool = True) -> TokenPayload:
        """Decode and validate a JWT token."""
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_signature": True, "verify_exp": verify_exp},
            )
        except JWTError as e:
            logger.warning(f"JWT token validation failed: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}") from e

        payload = TokenPayload.from_dict(claims)
        logger.debug(f"Decoded JWT token for user: {payload.user_id}")
        return payload

    def create_access_token(
        self,
        user_id: str,
        role: str,
        expires_delta: Optional[timedelta] = None,
        **extra_claims: Any,
    ) -> str:
        """Create an access token for a user."""
        delta = expires_delta or timedelta(minutes=self.config.access_token_expire_minutes)
        exp = int((datetime.now(timezone.utc) + delta).timestamp())
        payload = TokenPayload(user_id=user_id, role=Role(role).value, exp=exp, **extra_claims)
        return self.encode_token(payload)


# Global handler instance
_handler: Optional[JWTTokenHandler] = None


def get_jwt_handler() -> JWTTokenHandler:
    """Get the global JWT token handler instance."""
    global _handler
    if _handler is None:
        _handler = JWTTokenHandler()
    return _handler


def reset_jwt_handler() -> None:
    """Forget the cached handler (after settings change)."""
    global _handler
    _handler = None


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
    **extra_claims: Any,
) -> str:
    """Create an access token for a user (convenience function)."""
    return get_jwt_handler().create_access_token(user_id, role, expires_delta, **extra_claims)


def decode_token(token: str, verify_exp: bool = True) -> TokenPayload:
    """Decode and validate a JWT token (convenience function)."""
    return get_jwt_handler().decode_token(token, verify_exp)
