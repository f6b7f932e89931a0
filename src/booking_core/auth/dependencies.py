"""FastAPI dependencies for authentication."""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import Request

from booking_core.auth.jwt import decode_token
from booking_core.domain import Principal
from booking_core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """Resolve the caller from the bearer token.

    Raises:
        AuthenticationError: token missing, invalid, expired or without a known role
    """
    if credentials is None or not credentials.credentials:
        logger.warning(f"No token provided for {request.method} {request.url.path}")
        raise AuthenticationError("Not authenticated: no bearer token provided")

    principal = decode_token(credentials.credentials).to_principal()
    logger.debug(f"Authenticated {principal.role.value} {principal.user_id}")
    return principal
