"""
Client side of a provider-proposed reschedule, reached through the emailed link
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from slotbook.api.errors import result_response
from slotbook.config.database import get_db
from slotbook.schemas.booking import BookingResult, RescheduleProposalResult
from slotbook.services.booking.reschedule_service import RescheduleService

router = APIRouter()


@router.get("/{token}", response_model=RescheduleProposalResult)
def get_reschedule_options(token: str, db: Session = Depends(get_db)):
    result = RescheduleService.get_proposal(db, token)
    return result_response(result)


@router.post("/{token}", response_model=BookingResult)
def confirm_reschedule(
        token: str,
        payload: Dict[str, Any] = Body(...),
        db: Session = Depends(get_db)
):
    """Body: ``{"option_id": "<uuid>"}``, one of the options listed for the token"""
    result = RescheduleService.confirm_reschedule(db, token, payload)
    return result_response(result)
