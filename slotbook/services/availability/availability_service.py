# ===== slotbook/services/availability/availability_service.py =====
import logging
import re
from datetime import date, datetime, timezone
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.config.settings import get_settings
from slotbook.core.exceptions import (
    BookingError,
    ProviderNotFound,
    ServiceNotFound,
    TransientStoreError,
    ValidationError,
    UNEXPECTED_ERROR_CODE,
    UNEXPECTED_ERROR_MESSAGE,
)
from slotbook.scheduling.interval import Interval
from slotbook.scheduling.rules import day_of_week, resolve_windows
from slotbook.scheduling.slots import generate_slots
from slotbook.schemas.availability import AvailableSlotsResponse, SlotOut
from slotbook.services.conflicts.conflict_service import ConflictService
from slotbook.services.repository.scheduling_repository import (
    ProviderRecord,
    SchedulingRepository,
    ServiceRecord,
    as_uuid,
)

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD calendar date"""
    if isinstance(value, datetime):
        raise ValidationError("Date must be a calendar date in YYYY-MM-DD format")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValidationError("Date must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")


class AvailabilityService:
    """Computes the bookable slots a client sees on a provider's page"""

    @staticmethod
    def list_available_slots(
            db: Session,
            provider: Union[str, UUID],
            service_id: Union[str, UUID],
            target_date: Union[str, date],
            now: Optional[datetime] = None,
            exclude_booking_id: Optional[Union[str, UUID]] = None
    ) -> AvailableSlotsResponse:
        """
        List the free slots for one provider (username or id), service and
        date. Never raises: failures come back in ``error``/``error_code``.
        An empty slot list with no error means there is no availability.
        """
        try:
            slots = AvailabilityService.get_available_slots(
                db, provider, service_id, target_date,
                now=now, exclude_booking_id=exclude_booking_id
            )
            return AvailableSlotsResponse(
                slots=[SlotOut(start=slot.start, end=slot.end) for slot in slots]
            )

        except BookingError as e:
            logger.info(f"Slot listing rejected for provider {provider}: {e.code} ({e.message})")
            return AvailableSlotsResponse(error=e.message, error_code=e.code)

        except SQLAlchemyError:
            logger.exception(f"Store error while listing slots for provider {provider}")
            error = TransientStoreError()
            return AvailableSlotsResponse(error=error.message, error_code=error.code)

        except Exception:
            logger.exception(f"Unexpected error while listing slots for provider {provider}")
            return AvailableSlotsResponse(error=UNEXPECTED_ERROR_MESSAGE, error_code=UNEXPECTED_ERROR_CODE)

    @staticmethod
    def get_available_slots(
            db: Session,
            provider: Union[str, UUID],
            service_id: Union[str, UUID],
            target_date: Union[str, date],
            now: Optional[datetime] = None,
            exclude_booking_id: Optional[Union[str, UUID]] = None
    ) -> List[Interval]:
        """Raising variant of :meth:`list_available_slots`"""
        settings = get_settings()

        # Input checks happen before any store access
        target = parse_date(target_date)
        exclude = None
        if exclude_booking_id is not None:
            exclude = as_uuid(exclude_booking_id)
            if exclude is None:
                raise ValidationError("exclude_booking_id must be a UUID")

        provider_record = SchedulingRepository.find_provider(
            db, provider, default_timezone=settings.DEFAULT_TIMEZONE
        )
        if provider_record is None:
            raise ProviderNotFound()

        service = AvailabilityService.get_bookable_service(db, provider_record, service_id)
        policy = SchedulingRepository.get_policy(
            db, provider_record.id, default_min_notice=settings.DEFAULT_MIN_NOTICE_MINUTES
        )

        windows = AvailabilityService.get_windows(db, provider_record, target)
        if not windows:
            logger.info(f"No availability rules for provider {provider_record.id} on {target}")
            return []

        conflicts = ConflictService.load_conflicts(
            db, provider_record.id, windows, policy, exclude_booking_id=exclude
        )

        return list(generate_slots(
            windows,
            conflicts,
            service.duration_minutes,
            policy,
            now=now or datetime.now(timezone.utc),
            step_minutes=settings.SLOT_STEP_MINUTES,
        ))

    @staticmethod
    def get_bookable_service(
            db: Session,
            provider: ProviderRecord,
            service_id: Union[str, UUID]
    ) -> ServiceRecord:
        """The provider's active service, or ServiceNotFound"""
        service = SchedulingRepository.get_service(db, service_id)
        if service is None or service.provider_id != provider.id:
            raise ServiceNotFound()
        if not service.is_active:
            raise ServiceNotFound("This service is currently not available for booking")
        return service

    @staticmethod
    def get_windows(db: Session, provider: ProviderRecord, target_date: date) -> List[Interval]:
        """Resolved UTC availability windows for a provider-local date"""
        rules = SchedulingRepository.get_rules(db, provider.id, day_of_week=day_of_week(target_date))
        return resolve_windows(rules, target_date, provider.timezone)
