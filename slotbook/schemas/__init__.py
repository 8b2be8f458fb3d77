# slotbook/schemas/__init__.py
from .booking import (
    BookingCreate,
    BookingOut,
    BookingResult,
    CancellationResult
)

from .availability import (
    SlotOut,
    AvailableSlotsResponse,
    AvailabilityRuleIn,
    AvailabilitySettingsIn,
    BusyBlockIn
)

__all__ = [
    "BookingCreate",
    "BookingOut",
    "BookingResult",
    "CancellationResult",
    "SlotOut",
    "AvailableSlotsResponse",
    "AvailabilityRuleIn",
    "AvailabilitySettingsIn",
    "BusyBlockIn",
]
