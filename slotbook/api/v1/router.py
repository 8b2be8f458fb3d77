"""
API v1 router setup
"""
from fastapi import APIRouter

from slotbook.api.v1.public import availability, bookings, reschedule

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    availability.router,
    prefix="/public",
    tags=["Public"]
)

api_v1_router.include_router(
    bookings.router,
    prefix="/public/bookings",
    tags=["Public"]
)

api_v1_router.include_router(
    reschedule.router,
    prefix="/public/reschedule",
    tags=["Public"]
)


@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and available endpoints"""
    return {
        "version": "1.0",
        "endpoints": {
            "slots": "GET /api/v1/public/providers/{provider}/services/{service_id}/slots?date=YYYY-MM-DD",
            "book": "POST /api/v1/public/bookings",
            "cancel": "POST /api/v1/public/bookings/cancel/{token}",
            "reschedule_options": "GET /api/v1/public/reschedule/{token}",
            "reschedule_confirm": "POST /api/v1/public/reschedule/{token}",
        }
    }
