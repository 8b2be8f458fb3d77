# ============================================================================
# slotbook/services/conflicts/conflict_service.py
# Conflict Aggregator: fetches obstructions from the store for both the
# listing path and the commit path
# ============================================================================
import logging
from datetime import timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from slotbook.config.settings import get_settings
from slotbook.scheduling.conflicts import (
    Conflict,
    SchedulingPolicy,
    booking_conflict,
    busy_block_conflict,
    search_range,
)
from slotbook.scheduling.interval import Interval
from slotbook.services.repository.scheduling_repository import SchedulingRepository

logger = logging.getLogger(__name__)


class ConflictService:
    """Loads effective conflict intervals for a provider"""

    @staticmethod
    def load_conflicts(
            db: Session,
            provider_id: UUID,
            windows: Iterable[Interval],
            policy: SchedulingPolicy,
            exclude_booking_id: Optional[UUID] = None
    ) -> List[Conflict]:
        """
        Fetch bookings and busy blocks around ``windows`` and return them
        as conflicts.

        Bookings are padded with the current buffer settings, whatever was
        configured when they were made. Busy blocks are used as-is.
        """
        settings = get_settings()
        search = search_range(
            windows,
            policy,
            margin=timedelta(hours=settings.CONFLICT_SEARCH_MARGIN_HOURS),
        )
        if search is None:
            return []

        bookings = SchedulingRepository.get_booking_intervals(
            db, provider_id, search, exclude_booking_id=exclude_booking_id
        )
        busy_blocks = SchedulingRepository.get_busy_block_intervals(db, provider_id, search)

        conflicts = [booking_conflict(interval, policy, ref) for ref, interval in bookings]
        conflicts.extend(busy_block_conflict(interval, ref) for ref, interval in busy_blocks)

        logger.debug(
            f"Loaded {len(bookings)} bookings and {len(busy_blocks)} busy blocks "
            f"for provider {provider_id} in {search.start.isoformat()} - {search.end.isoformat()}"
        )
        return conflicts
