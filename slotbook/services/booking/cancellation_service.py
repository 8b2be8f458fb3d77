# ===== slotbook/services/booking/cancellation_service.py =====
"""Cancelling bookings, by the client (token link) or by the provider"""
import logging
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.core.exceptions import (
    BookingError,
    BookingNotFound,
    TokenInvalid,
    TransientStoreError,
    UNEXPECTED_ERROR_CODE,
    UNEXPECTED_ERROR_MESSAGE,
)
from slotbook.models import ActionToken, Booking, BookingStatus, ProposalStatus
from slotbook.scheduling.interval import ensure_utc
from slotbook.schemas.booking import CancellationResult
from slotbook.services.audit.audit_service import AuditService
from slotbook.services.booking.booking_service import close_open_proposals
from slotbook.services.repository.scheduling_repository import as_uuid

logger = logging.getLogger(__name__)


class CancellationService:
    """Soft-deletes bookings; cancelled rows stay for audit"""

    @staticmethod
    def cancel_booking_via_token(db: Session, token: str, now: Optional[datetime] = None) -> CancellationResult:
        """Cancel with a one-time client token. The token is consumed on success."""
        now = ensure_utc(now or datetime.now(timezone.utc))
        try:
            action = db.query(ActionToken).filter(
                ActionToken.token == token,
                ActionToken.type == "cancel"
            ).first()

            if action is None or ensure_utc(action.expires_at) < now:
                raise TokenInvalid()

            booking = db.query(Booking).filter(Booking.id == action.booking_id).first()
            if booking is None:
                raise TokenInvalid()

            booking_id = booking.id
            CancellationService._mark_cancelled(booking, now)
            close_open_proposals(db, booking_id, ProposalStatus.CANCELLED)
            db.delete(action)
            db.commit()

        except BookingError as e:
            db.rollback()
            return CancellationResult(success=False, error=e.message, error_code=e.code)

        except SQLAlchemyError:
            db.rollback()
            logger.exception("Store error while cancelling booking via token")
            error = TransientStoreError()
            return CancellationResult(success=False, error=error.message, error_code=error.code)

        except Exception:
            db.rollback()
            logger.exception("Unexpected error while cancelling booking via token")
            return CancellationResult(success=False, error=UNEXPECTED_ERROR_MESSAGE, error_code=UNEXPECTED_ERROR_CODE)

        logger.info(f"Booking {booking_id} cancelled by client")
        AuditService.record_booking(booking_id, "cancel", metadata={"cancelled_by": "client"})
        return CancellationResult(success=True, booking_id=booking_id)

    @staticmethod
    def cancel_booking_as_provider(
            db: Session,
            provider_id: Union[str, UUID],
            booking_id: Union[str, UUID],
            now: Optional[datetime] = None
    ) -> CancellationResult:
        """Cancel one of the provider's own bookings"""
        now = ensure_utc(now or datetime.now(timezone.utc))
        provider_uuid = as_uuid(provider_id)
        booking_uuid = as_uuid(booking_id)

        try:
            if provider_uuid is None or booking_uuid is None:
                raise BookingNotFound()

            booking = db.query(Booking).filter(
                Booking.id == booking_uuid,
                Booking.provider_id == provider_uuid
            ).first()
            if booking is None:
                raise BookingNotFound("Booking not found or access denied")

            CancellationService._mark_cancelled(booking, now)
            close_open_proposals(db, booking_uuid, ProposalStatus.CANCELLED)
            # Outstanding client links are useless once cancelled
            db.query(ActionToken).filter(ActionToken.booking_id == booking_uuid).delete(
                synchronize_session=False
            )
            db.commit()

        except BookingError as e:
            db.rollback()
            return CancellationResult(success=False, error=e.message, error_code=e.code)

        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Store error while cancelling booking {booking_id}")
            error = TransientStoreError()
            return CancellationResult(success=False, error=error.message, error_code=error.code)

        logger.info(f"Booking {booking_uuid} cancelled by provider {provider_uuid}")
        AuditService.record_booking(booking_uuid, "cancel", metadata={"cancelled_by": "provider"})
        return CancellationResult(success=True, booking_id=booking_uuid)

    @staticmethod
    def _mark_cancelled(booking: Booking, now: datetime) -> None:
        if booking.status == BookingStatus.CANCELLED.value:
            return
        booking.status = BookingStatus.CANCELLED.value
        booking.cancelled_at = now
