"""Bounding storage work by the configured timeout."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from booking_core.exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_with_timeout(operation: Awaitable[T], timeout_seconds: Optional[float], name: str) -> T:
    """Await ``operation``; past ``timeout_seconds`` it is cancelled and StorageError raised.

    Cancellation unwinds the open transaction, so nothing partial is committed.
    """
    if timeout_seconds is None:
        return await operation
    try:
        return await asyncio.wait_for(operation, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        logger.warning(f"{name} exceeded storage timeout of {timeout_seconds}s")
        raise StorageError(
            f"Storage did not respond in time ({name})",
            details={"timeout_seconds": timeout_seconds},
        ) from e
