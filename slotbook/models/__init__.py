# slotbook/models/__init__.py
from .base import Base
from .profile import Profile
from .service import Service
from .availability import AvailabilityRule, AvailabilitySettings
from .busy_block import BusyBlock
from .booking import Booking, BookingStatus
from .action_token import ActionToken
from .reschedule import ProposalStatus, RescheduleOption, RescheduleProposal
from .audit_log import AuditLog

__all__ = [
    "Base",
    "Profile",
    "Service",
    "AvailabilityRule",
    "AvailabilitySettings",
    "BusyBlock",
    "Booking",
    "BookingStatus",
    "ActionToken",
    "ProposalStatus",
    "RescheduleProposal",
    "RescheduleOption",
    "AuditLog",
]
