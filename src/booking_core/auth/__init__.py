"""Authentication module."""

from booking_core.auth.dependencies import get_current_principal, security
from booking_core.auth.jwt import (
    JWTTokenHandler,
    TokenPayload,
    create_access_token,
    decode_token,
    get_jwt_handler,
    reset_jwt_handler,
)

__all__ = [
    "JWTTokenHandler",
    "TokenPayload",
    "create_access_token",
    "decode_token",
    "get_current_principal",
    "get_jwt_handler",
    "reset_jwt_handler",
    "security",
]
