# ============================================================================
# slotbook/services/booking/booking_service.py
# Booking Commit Validator: re-validates a requested slot against fresh
# store state and writes it inside the same provider-locked transaction
# ============================================================================
"""Service for creating and moving bookings"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Union
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.config.settings import get_settings
from slotbook.core.exceptions import (
    BookingError,
    BookingNotFound,
    ProviderNotFound,
    ServiceNotFound,
    SlotUnavailable,
    TransientStoreError,
    ValidationError,
    UNEXPECTED_ERROR_CODE,
    UNEXPECTED_ERROR_MESSAGE,
)
from slotbook.models import ActionToken, Booking, BookingStatus, ProposalStatus, RescheduleProposal
from slotbook.scheduling.conflicts import blocking_conflicts
from slotbook.scheduling.interval import Interval, ensure_utc
from slotbook.scheduling.rules import local_date_of
from slotbook.scheduling.slots import earliest_start, fits_in_windows
from slotbook.schemas.booking import BookingCreate, BookingOut, BookingResult, require_offset
from slotbook.services.audit.audit_service import AuditService
from slotbook.services.availability.availability_service import AvailabilityService
from slotbook.services.conflicts.conflict_service import ConflictService
from slotbook.services.repository.scheduling_repository import (
    ProviderRecord,
    SchedulingRepository,
    ServiceRecord,
    as_uuid,
)

logger = logging.getLogger(__name__)

# A booking can only be moved while it still holds its time
MOVABLE_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.PENDING_RESCHEDULE.value)


def describe_validation_error(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into one user-facing sentence"""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
        message = error.get("msg", "invalid value")
        messages.append(f"{field}: {message}" if field else message)
    return "; ".join(messages) or "Invalid request"


def failure_result(error: BookingError) -> BookingResult:
    return BookingResult(success=False, error=error.message, error_code=error.code)


def unexpected_result() -> BookingResult:
    return BookingResult(success=False, error=UNEXPECTED_ERROR_MESSAGE, error_code=UNEXPECTED_ERROR_CODE)


def generate_action_token() -> str:
    """URL-safe, compact, cryptographically random"""
    return secrets.token_hex(16)


def close_open_proposals(
        db: Session,
        booking_id: UUID,
        status: ProposalStatus,
        keep_proposal_id: Optional[UUID] = None
) -> int:
    """Move the booking's active reschedule proposals to ``status``"""
    query = db.query(RescheduleProposal).filter(
        RescheduleProposal.booking_id == booking_id,
        RescheduleProposal.status == ProposalStatus.ACTIVE.value
    )
    if keep_proposal_id is not None:
        query = query.filter(RescheduleProposal.id != keep_proposal_id)
    return query.update({"status": status.value}, synchronize_session=False)


class BookingService:
    """Handles booking writes"""

    @staticmethod
    def create_booking(
            db: Session,
            payload: Union[BookingCreate, Mapping[str, Any]],
            now: Optional[datetime] = None
    ) -> BookingResult:
        """
        Validate and commit a new booking.

        Never raises. A conflicting request returns ``slot_unavailable``;
        store failures return a generic message and are not retried here.
        """
        try:
            request = payload if isinstance(payload, BookingCreate) else BookingCreate.model_validate(payload)
        except PydanticValidationError as e:
            return failure_result(ValidationError(describe_validation_error(e)))

        try:
            booking = BookingService._commit_new_booking(db, request, now)
            created = BookingOut.model_validate(booking)

        except SlotUnavailable as e:
            db.rollback()
            logger.info(f"Slot {request.start_at.isoformat()} unavailable for provider {request.provider_id}")
            return failure_result(e)

        except BookingError as e:
            db.rollback()
            logger.info(f"Booking rejected for provider {request.provider_id}: {e.code}")
            return failure_result(e)

        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Store error while creating booking for provider {request.provider_id}")
            return failure_result(TransientStoreError())

        except Exception:
            db.rollback()
            logger.exception(f"Unexpected error while creating booking for provider {request.provider_id}")
            return unexpected_result()

        logger.info(f"✅ Booking {created.id} confirmed for provider {created.provider_id} at {created.start_at.isoformat()}")

        # Side effects below are best-effort and cannot undo the booking
        cancel_token = BookingService.issue_cancel_token(db, created.id, created.start_at)
        AuditService.record_booking(
            created.id,
            "create",
            new=created.model_dump(include={"service_id", "start_at", "end_at", "status"}),
            metadata={"source": "public_booking"},
        )

        return BookingResult(success=True, booking=created, cancel_token=cancel_token)

    @staticmethod
    def reschedule_booking(
            db: Session,
            provider_id: Union[str, UUID],
            booking_id: Union[str, UUID],
            new_start_at: datetime,
            now: Optional[datetime] = None
    ) -> BookingResult:
        """Move a provider's booking to a new start, keeping its service duration"""
        try:
            new_start = require_offset(new_start_at)
        except ValueError as e:
            return failure_result(ValidationError(f"new_start_at: {e}"))

        booking_uuid = as_uuid(booking_id)
        if booking_uuid is None:
            return failure_result(BookingNotFound())

        try:
            booking, previous = BookingService._commit_reschedule(db, provider_id, booking_uuid, new_start, now)
            moved = BookingOut.model_validate(booking)

        except BookingError as e:
            db.rollback()
            logger.info(f"Reschedule of booking {booking_id} rejected: {e.code}")
            return failure_result(e)

        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Store error while rescheduling booking {booking_id}")
            return failure_result(TransientStoreError())

        except Exception:
            db.rollback()
            logger.exception(f"Unexpected error while rescheduling booking {booking_id}")
            return unexpected_result()

        logger.info(f"Booking {moved.id} moved to {moved.start_at.isoformat()}")
        AuditService.record_booking(
            moved.id,
            "reschedule",
            old=previous,
            new={"start_at": moved.start_at, "end_at": moved.end_at},
        )
        return BookingResult(success=True, booking=moved)

    # ------------------------------------------------------------------
    # Transactional steps
    # ------------------------------------------------------------------

    @staticmethod
    def _commit_new_booking(db: Session, request: BookingCreate, now: Optional[datetime]) -> Booking:
        settings = get_settings()

        provider = SchedulingRepository.lock_provider(
            db, request.provider_id, default_timezone=settings.DEFAULT_TIMEZONE
        )
        if provider is None:
            raise ProviderNotFound()

        service = SchedulingRepository.get_service(db, request.service_id)
        if service is None:
            raise ServiceNotFound()
        if service.provider_id != request.provider_id:
            raise ServiceNotFound("Service does not belong to this provider")
        if not service.is_active:
            raise ServiceNotFound("This service is currently not available for booking")

        slot = BookingService.validate_slot(db, provider, service, request.start_at, now)

        booking = Booking(
            provider_id=provider.id,
            service_id=service.id,
            client_name=request.client_name,
            client_email=request.client_email,
            client_phone=request.client_phone,
            notes=request.notes,
            start_at=slot.start,
            end_at=slot.end,
            status=BookingStatus.CONFIRMED.value,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def _commit_reschedule(
            db: Session,
            provider_id: Union[str, UUID],
            booking_id: UUID,
            new_start: datetime,
            now: Optional[datetime]
    ):
        settings = get_settings()

        provider = SchedulingRepository.lock_provider(
            db, provider_id, default_timezone=settings.DEFAULT_TIMEZONE
        )
        if provider is None:
            raise ProviderNotFound()

        booking = db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.provider_id == provider.id
        ).first()
        if booking is None or booking.status == BookingStatus.CANCELLED.value:
            raise BookingNotFound()
        if booking.status not in MOVABLE_STATUSES:
            raise ValidationError(f"A {booking.status} booking cannot be rescheduled")

        service = SchedulingRepository.get_service(db, booking.service_id)
        if service is None:
            raise ServiceNotFound()

        previous = {"start_at": ensure_utc(booking.start_at), "end_at": ensure_utc(booking.end_at)}
        slot = BookingService.validate_slot(
            db, provider, service, new_start, now, exclude_booking_id=booking.id
        )

        BookingService.apply_move(db, booking, slot)
        close_open_proposals(db, booking.id, ProposalStatus.SUPERSEDED)
        db.commit()
        db.refresh(booking)
        return booking, previous

    @staticmethod
    def apply_move(db: Session, booking: Booking, slot: Interval) -> None:
        """Put the booking on ``slot`` and keep its cancel link cutoff in step"""
        settings = get_settings()
        booking.start_at = slot.start
        booking.end_at = slot.end
        booking.status = BookingStatus.CONFIRMED.value

        db.query(ActionToken).filter(
            ActionToken.booking_id == booking.id,
            ActionToken.type == "cancel"
        ).update(
            {"expires_at": slot.start - timedelta(hours=settings.CANCEL_TOKEN_CUTOFF_HOURS)},
            synchronize_session=False
        )

    @staticmethod
    def validate_slot(
            db: Session,
            provider: ProviderRecord,
            service: ServiceRecord,
            start_at: datetime,
            now: Optional[datetime] = None,
            exclude_booking_id: Optional[UUID] = None
    ) -> Interval:
        """
        Write-path slot check. Uses the same policy, rule resolution and
        conflict evaluation as slot listing. Call with the provider lock held.
        """
        settings = get_settings()
        now = ensure_utc(now or datetime.now(timezone.utc))

        # end_at always comes from the service, never from the client
        slot = Interval(start_at, start_at + timedelta(minutes=service.duration_minutes))
        policy = SchedulingRepository.get_policy(
            db, provider.id, default_min_notice=settings.DEFAULT_MIN_NOTICE_MINUTES
        )

        if slot.start < earliest_start(now, policy):
            raise SlotUnavailable("This time is too soon to book, please pick a later slot")

        local_date = local_date_of(slot.start, provider.timezone)
        windows = AvailabilityService.get_windows(db, provider, local_date)
        if not fits_in_windows(slot, windows):
            raise SlotUnavailable("This time is outside the provider's availability")

        conflicts = ConflictService.load_conflicts(
            db, provider.id, [slot], policy, exclude_booking_id=exclude_booking_id
        )
        blocking = blocking_conflicts(slot, conflicts, policy)
        if blocking:
            logger.info(
                f"Slot {slot.start.isoformat()} for provider {provider.id} blocked by "
                f"{', '.join(f'{c.source.value}:{c.reference}' for c in blocking)}"
            )
            raise SlotUnavailable()

        return slot

    @staticmethod
    def issue_cancel_token(db: Session, booking_id: UUID, start_at: datetime) -> Optional[str]:
        """Store a one-time cancel token; returns None (and logs) on failure"""
        settings = get_settings()
        token = generate_action_token()
        expires_at = ensure_utc(start_at) - timedelta(hours=settings.CANCEL_TOKEN_CUTOFF_HOURS)

        try:
            db.add(ActionToken(
                token=token,
                type="cancel",
                booking_id=booking_id,
                expires_at=expires_at,
            ))
            db.commit()
            return token
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create cancel token for booking {booking_id}: {e}")
            return None
