"""
Public booking endpoints: create a booking and cancel through the emailed link
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from slotbook.api.errors import result_response
from slotbook.config.database import get_db
from slotbook.schemas.booking import BookingResult, CancellationResult
from slotbook.services.booking.booking_service import BookingService
from slotbook.services.booking.cancellation_service import CancellationService

router = APIRouter()


@router.post("", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
def create_booking(
        payload: Dict[str, Any] = Body(...),
        db: Session = Depends(get_db)
):
    # Raw body on purpose: field errors come back as a BookingResult too
    result = BookingService.create_booking(db, payload)
    return result_response(result, success_status=status.HTTP_201_CREATED)


@router.post("/cancel/{token}", response_model=CancellationResult)
def cancel_booking(token: str, db: Session = Depends(get_db)):
    result = CancellationService.cancel_booking_via_token(db, token)
    return result_response(result)
