"""
Public slot listing for the booking page
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from slotbook.api.errors import result_response
from slotbook.config.database import get_db
from slotbook.schemas.availability import AvailableSlotsResponse
from slotbook.services.availability.availability_service import AvailabilityService

router = APIRouter()


@router.get(
    "/providers/{provider}/services/{service_id}/slots",
    response_model=AvailableSlotsResponse,
)
def list_slots(
        provider: str,
        service_id: str,
        date: str = Query(..., description="Provider-local date, YYYY-MM-DD"),
        db: Session = Depends(get_db)
):
    """
    Free start times for a provider (username or id) and service on one
    date. An empty ``slots`` list means the provider has no availability.
    """
    result = AvailabilityService.list_available_slots(db, provider, service_id, date)
    return result_response(result)
