# ============================================================================
# slotbook/services/booking/reschedule_service.py
# Provider-proposed reschedules: the provider offers new times, the client
# picks one through the emailed token link
# ============================================================================
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional, Union
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
    TokenInvalid,
    TransientStoreError,
    ValidationError,
    UNEXPECTED_ERROR_CODE,
    UNEXPECTED_ERROR_MESSAGE,
)
from slotbook.models import (
    Booking,
    BookingStatus,
    ProposalStatus,
    RescheduleOption,
    RescheduleProposal,
)
from slotbook.scheduling.interval import ensure_utc
from slotbook.schemas.booking import (
    BookingOut,
    BookingResult,
    RescheduleConfirm,
    RescheduleOptionOut,
    RescheduleProposalCreate,
    RescheduleProposalResult,
)
from slotbook.services.audit.audit_service import AuditService
from slotbook.services.booking.booking_service import (
    MOVABLE_STATUSES,
    BookingService,
    close_open_proposals,
    describe_validation_error,
    failure_result,
    generate_action_token,
    unexpected_result,
)
from slotbook.services.repository.scheduling_repository import SchedulingRepository, as_uuid

logger = logging.getLogger(__name__)


def proposal_failure(error: BookingError) -> RescheduleProposalResult:
    return RescheduleProposalResult(success=False, error=error.message, error_code=error.code)


def _list_options(db: Session, proposal_id: UUID) -> List[RescheduleOptionOut]:
    rows = db.query(RescheduleOption).filter(
        RescheduleOption.proposal_id == proposal_id
    ).order_by(RescheduleOption.start_at).all()
    return [RescheduleOptionOut.model_validate(row) for row in rows]


class RescheduleService:
    """Propose-then-confirm reschedules. Both steps run under the provider lock."""

    @staticmethod
    def propose_reschedule(
            db: Session,
            provider_id: Union[str, UUID],
            booking_id: Union[str, UUID],
            payload: Union[RescheduleProposalCreate, Mapping[str, Any]],
            now: Optional[datetime] = None
    ) -> RescheduleProposalResult:
        """
        Offer the client new start times for a booking.

        Every option must be bookable right now (ignoring the booking's own
        time). The booking moves to ``pending_reschedule`` and keeps holding
        its current time until the client confirms. A newer proposal
        replaces any earlier one.
        """
        try:
            request = payload if isinstance(payload, RescheduleProposalCreate) \
                else RescheduleProposalCreate.model_validate(payload)
        except PydanticValidationError as e:
            return proposal_failure(ValidationError(describe_validation_error(e)))

        booking_uuid = as_uuid(booking_id)
        if booking_uuid is None:
            return proposal_failure(BookingNotFound())

        now = ensure_utc(now or datetime.now(timezone.utc))
        try:
            proposal, options = RescheduleService._commit_proposal(
                db, provider_id, booking_uuid, request.options, now
            )
            result = RescheduleProposalResult(
                success=True,
                booking_id=booking_uuid,
                token=proposal.token,
                expires_at=ensure_utc(proposal.expires_at),
                options=options,
            )

        except SlotUnavailable as e:
            db.rollback()
            logger.info(f"Reschedule proposal for booking {booking_id} offers a taken time: {e.message}")
            return proposal_failure(e)

        except BookingError as e:
            db.rollback()
            logger.info(f"Reschedule proposal for booking {booking_id} rejected: {e.code}")
            return proposal_failure(e)

        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Store error while proposing reschedule of booking {booking_id}")
            return proposal_failure(TransientStoreError())

        except Exception:
            db.rollback()
            logger.exception(f"Unexpected error while proposing reschedule of booking {booking_id}")
            return RescheduleProposalResult(
                success=False, error=UNEXPECTED_ERROR_MESSAGE, error_code=UNEXPECTED_ERROR_CODE
            )

        logger.info(f"📨 Reschedule proposed for booking {booking_uuid} with {len(options)} option(s)")
        AuditService.record_booking(
            booking_uuid,
            "reschedule_proposed",
            new={"status": BookingStatus.PENDING_RESCHEDULE.value},
            metadata={"options": [option.start_at.isoformat() for option in options]},
        )
        return result

    @staticmethod
    def get_proposal(db: Session, token: str, now: Optional[datetime] = None) -> RescheduleProposalResult:
        """Options behind a client reschedule link"""
        now = ensure_utc(now or datetime.now(timezone.utc))
        try:
            proposal = RescheduleService._find_open_proposal(db, token, now)
            return RescheduleProposalResult(
                success=True,
                booking_id=proposal.booking_id,
                token=proposal.token,
                expires_at=ensure_utc(proposal.expires_at),
                options=_list_options(db, proposal.id),
            )

        except BookingError as e:
            return proposal_failure(e)

        except SQLAlchemyError:
            db.rollback()
            logger.exception("Store error while loading reschedule proposal")
            return proposal_failure(TransientStoreError())

    @staticmethod
    def confirm_reschedule(
            db: Session,
            token: str,
            payload: Union[RescheduleConfirm, Mapping[str, Any]],
            now: Optional[datetime] = None
    ) -> BookingResult:
        """
        Move the booking to the option the client picked.

        The option is re-validated against fresh state; a time taken since
        the proposal was made returns ``slot_unavailable`` and the proposal
        stays open so another option can be picked.
        """
        try:
            request = payload if isinstance(payload, RescheduleConfirm) \
                else RescheduleConfirm.model_validate(payload)
        except PydanticValidationError as e:
            return failure_result(ValidationError(describe_validation_error(e)))

        now = ensure_utc(now or datetime.now(timezone.utc))
        try:
            booking, previous = RescheduleService._commit_confirmation(db, token, request.option_id, now)
            moved = BookingOut.model_validate(booking)

        except BookingError as e:
            db.rollback()
            logger.info(f"Reschedule confirmation rejected: {e.code}")
            return failure_result(e)

        except SQLAlchemyError:
            db.rollback()
            logger.exception("Store error while confirming reschedule")
            return failure_result(TransientStoreError())

        except Exception:
            db.rollback()
            logger.exception("Unexpected error while confirming reschedule")
            return unexpected_result()

        logger.info(f"Booking {moved.id} moved to {moved.start_at.isoformat()} by client")
        AuditService.record_booking(
            moved.id,
            "reschedule",
            old=previous,
            new={"start_at": moved.start_at, "end_at": moved.end_at},
            metadata={"rescheduled_by": "client"},
        )
        return BookingResult(success=True, booking=moved)

    # ------------------------------------------------------------------
    # Transactional steps
    # ------------------------------------------------------------------

    @staticmethod
    def _find_open_proposal(db: Session, token: str, now: datetime) -> RescheduleProposal:
        proposal = db.query(RescheduleProposal).filter(RescheduleProposal.token == token).first()
        if (
                proposal is None
                or proposal.status != ProposalStatus.ACTIVE.value
                or ensure_utc(proposal.expires_at) < now
        ):
            raise TokenInvalid()
        return proposal

    @staticmethod
    def _commit_proposal(
            db: Session,
            provider_id: Union[str, UUID],
            booking_id: UUID,
            starts: List[datetime],
            now: datetime
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
            raise BookingNotFound("Booking not found or access denied")
        if booking.status not in MOVABLE_STATUSES:
            raise ValidationError(f"A {booking.status} booking cannot be rescheduled")

        service = SchedulingRepository.get_service(db, booking.service_id)
        if service is None:
            raise ServiceNotFound()

        slots = []
        for start in starts:
            try:
                slots.append(BookingService.validate_slot(
                    db, provider, service, start, now, exclude_booking_id=booking.id
                ))
            except SlotUnavailable as e:
                raise SlotUnavailable(f"{start.isoformat()}: {e.message}")

        close_open_proposals(db, booking.id, ProposalStatus.SUPERSEDED)

        proposal = RescheduleProposal(
            booking_id=booking.id,
            provider_id=provider.id,
            token=generate_action_token(),
            status=ProposalStatus.ACTIVE.value,
            expires_at=now + timedelta(hours=settings.RESCHEDULE_PROPOSAL_TTL_HOURS),
        )
        db.add(proposal)
        db.flush()

        db.add_all([
            RescheduleOption(proposal_id=proposal.id, start_at=slot.start, end_at=slot.end)
            for slot in slots
        ])
        booking.status = BookingStatus.PENDING_RESCHEDULE.value
        db.commit()

        return proposal, _list_options(db, proposal.id)

    @staticmethod
    def _commit_confirmation(db: Session, token: str, option_id: UUID, now: datetime):
        settings = get_settings()

        proposal = RescheduleService._find_open_proposal(db, token, now)
        provider = SchedulingRepository.lock_provider(
            db, proposal.provider_id, default_timezone=settings.DEFAULT_TIMEZONE
        )
        if provider is None:
            raise TokenInvalid()

        # Another confirmation may have landed while waiting for the lock
        db.refresh(proposal)
        if proposal.status != ProposalStatus.ACTIVE.value:
            raise TokenInvalid()

        option = db.query(RescheduleOption).filter(
            RescheduleOption.id == option_id,
            RescheduleOption.proposal_id == proposal.id
        ).first()
        if option is None:
            raise ValidationError("option_id: not one of the proposed times")

        booking = db.query(Booking).filter(Booking.id == proposal.booking_id).first()
        if booking is None or booking.status != BookingStatus.PENDING_RESCHEDULE.value:
            raise TokenInvalid()

        service = SchedulingRepository.get_service(db, booking.service_id)
        if service is None:
            raise ServiceNotFound()

        previous = {"start_at": ensure_utc(booking.start_at), "end_at": ensure_utc(booking.end_at)}
        slot = BookingService.validate_slot(
            db, provider, service, ensure_utc(option.start_at), now, exclude_booking_id=booking.id
        )

        BookingService.apply_move(db, booking, slot)
        proposal.status = ProposalStatus.ACCEPTED.value
        close_open_proposals(db, booking.id, ProposalStatus.SUPERSEDED, keep_proposal_id=proposal.id)
        db.commit()
        db.refresh(booking)
        return booking, previous
