"""API v1 router aggregation.

All v1 endpoints are prefixed with `/api/v1`.

Routers included:
- Appointments (`/api/v1/appointments/*`)

Common middleware (applied at application level in main.py):
- CORS, RequestID, Timing, ErrorLogging, SecurityHeaders
"""

from fastapi import APIRouter

from booking_core.api.v1 import appointments
from booking_core.config import get_settings

router = APIRouter(
    prefix=get_settings().api_v1_prefix,
    tags=["v1"],
    responses={
        404: {"description": "Not found"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)

router.include_router(appointments.router)


@router.get(
    "/",
    summary="API Information",
    description="Get API version and status information",
    tags=["v1"],
)
async def api_info():
    """Public; returns the API version and the mounted endpoint groups."""
    return {
        "version": "v1",
        "status": "active",
        "endpoints": {
            "appointments": "/api/v1/appointments",
        },
    }
