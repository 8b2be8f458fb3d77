# slotbook/core/exceptions.py
"""Booking error taxonomy shared by the listing and commit paths"""
from typing import Optional


class BookingError(Exception):
    """Base class for every failure a booking operation can report"""

    code = "booking_error"
    default_message = "Booking request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ProviderNotFound(BookingError):
    code = "provider_not_found"
    default_message = "Provider not found"


class ServiceNotFound(BookingError):
    code = "service_not_found"
    default_message = "Service not found"


class BookingNotFound(BookingError):
    code = "booking_not_found"
    default_message = "Booking not found"


class SlotUnavailable(BookingError):
    """Expected outcome when a slot was claimed or is no longer valid"""

    code = "slot_unavailable"
    default_message = "This time slot is no longer available"


class ValidationError(BookingError):
    """Malformed input, rejected before any store access"""

    code = "validation_error"
    default_message = "Invalid request"


class TokenInvalid(BookingError):
    code = "token_invalid"
    default_message = "Invalid or expired token"


class TransientStoreError(BookingError):
    code = "transient_store_error"
    default_message = "Something went wrong on our side, please try again"


UNEXPECTED_ERROR_CODE = "unexpected_error"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
