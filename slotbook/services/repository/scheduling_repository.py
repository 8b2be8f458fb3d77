# ============================================================================
# slotbook/services/repository/scheduling_repository.py
# Store boundary: every query the scheduling paths need, returning plain
# records instead of ORM rows
# ============================================================================
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import and_
from sqlalchemy.orm import Session

from slotbook.models import (
    AvailabilityRule,
    AvailabilitySettings,
    Booking,
    BookingStatus,
    BusyBlock,
    Profile,
    Service,
)
from slotbook.scheduling.conflicts import SchedulingPolicy
from slotbook.scheduling.interval import Interval
from slotbook.scheduling.rules import WeeklyRule, parse_local_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderRecord:
    id: UUID
    username: str
    timezone: str


@dataclass(frozen=True)
class ServiceRecord:
    id: UUID
    provider_id: UUID
    duration_minutes: int
    is_active: bool


def as_uuid(value: Union[str, UUID, None]) -> Optional[UUID]:
    """Parse an identifier, returning None for anything that is not a UUID"""
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def overlap_filter(start_column, end_column, window: Interval):
    """SQL form of ``Interval.overlaps``: start < window.end AND end > window.start"""
    return and_(start_column < window.end, end_column > window.start)


class SchedulingRepository:
    """Queries for providers, services, rules, settings and obstructions"""

    @staticmethod
    def _provider_record(profile: Profile, default_timezone: str) -> ProviderRecord:
        return ProviderRecord(
            id=profile.id,
            username=profile.username,
            timezone=profile.timezone or default_timezone,
        )

    @staticmethod
    def find_provider(
            db: Session,
            username_or_id: Union[str, UUID],
            default_timezone: str = "UTC"
    ) -> Optional[ProviderRecord]:
        """Look a provider up by public username, then by id"""
        profile = None
        if isinstance(username_or_id, str):
            profile = db.query(Profile).filter(Profile.username == username_or_id).first()

        if profile is None:
            provider_id = as_uuid(username_or_id)
            if provider_id is not None:
                profile = db.query(Profile).filter(Profile.id == provider_id).first()

        if profile is None:
            return None
        return SchedulingRepository._provider_record(profile, default_timezone)

    @staticmethod
    def lock_provider(
            db: Session,
            provider_id: Union[str, UUID],
            default_timezone: str = "UTC"
    ) -> Optional[ProviderRecord]:
        """
        Lock the provider row for the rest of the transaction.

        Every booking commit takes this lock first, which serializes
        check-then-write sequences per provider.
        """
        provider_id = as_uuid(provider_id)
        if provider_id is None:
            return None

        profile = (
            db.query(Profile)
            .filter(Profile.id == provider_id)
            .with_for_update()
            .one_or_none()
        )
        if profile is None:
            return None
        return SchedulingRepository._provider_record(profile, default_timezone)

    @staticmethod
    def get_service(db: Session, service_id: Union[str, UUID]) -> Optional[ServiceRecord]:
        service_id = as_uuid(service_id)
        if service_id is None:
            return None

        service = db.query(Service).filter(Service.id == service_id).first()
        if service is None:
            return None

        return ServiceRecord(
            id=service.id,
            provider_id=service.provider_id,
            duration_minutes=service.duration_minutes,
            is_active=bool(service.is_active),
        )

    @staticmethod
    def get_policy(db: Session, provider_id: UUID, default_min_notice: int = 120) -> SchedulingPolicy:
        """Provider settings, with zero buffers and the default notice when absent"""
        settings = db.query(AvailabilitySettings).filter(
            AvailabilitySettings.provider_id == provider_id
        ).first()

        if settings is None:
            return SchedulingPolicy(min_notice_minutes=default_min_notice)

        return SchedulingPolicy(
            buffer_before_minutes=settings.buffer_before_minutes or 0,
            buffer_after_minutes=settings.buffer_after_minutes or 0,
            min_notice_minutes=(
                settings.min_notice_minutes
                if settings.min_notice_minutes is not None
                else default_min_notice
            ),
        )

    @staticmethod
    def get_rules(db: Session, provider_id: UUID, day_of_week: Optional[int] = None) -> List[WeeklyRule]:
        query = db.query(AvailabilityRule).filter(AvailabilityRule.provider_id == provider_id)
        if day_of_week is not None:
            query = query.filter(AvailabilityRule.day_of_week == day_of_week)

        return [
            WeeklyRule(
                day_of_week=rule.day_of_week,
                start_time_local=parse_local_time(rule.start_time_local),
                end_time_local=parse_local_time(rule.end_time_local),
            )
            for rule in query.all()
        ]

    @staticmethod
    def _intervals(rows, kind: str) -> List[Tuple[str, Interval]]:
        intervals = []
        for row_id, start_at, end_at in rows:
            try:
                intervals.append((str(row_id), Interval(start_at, end_at)))
            except ValueError:
                logger.warning(f"Skipping {kind} {row_id} with inconsistent range {start_at} - {end_at}")
        return intervals

    @staticmethod
    def get_booking_intervals(
            db: Session,
            provider_id: UUID,
            window: Interval,
            exclude_booking_id: Optional[UUID] = None
    ) -> List[Tuple[str, Interval]]:
        """Non-cancelled bookings whose stored range overlaps ``window``"""
        query = db.query(Booking.id, Booking.start_at, Booking.end_at).filter(
            Booking.provider_id == provider_id,
            Booking.status != BookingStatus.CANCELLED.value,
            overlap_filter(Booking.start_at, Booking.end_at, window),
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)

        return SchedulingRepository._intervals(query.all(), "booking")

    @staticmethod
    def get_busy_block_intervals(
            db: Session,
            provider_id: UUID,
            window: Interval
    ) -> List[Tuple[str, Interval]]:
        """Busy blocks whose range overlaps ``window``"""
        rows = db.query(BusyBlock.id, BusyBlock.start_at, BusyBlock.end_at).filter(
            BusyBlock.provider_id == provider_id,
            overlap_filter(BusyBlock.start_at, BusyBlock.end_at, window),
        ).all()

        return SchedulingRepository._intervals(rows, "busy block")
