"""
Pydantic schemas for booking requests and results
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator, ValidationInfo

from slotbook.scheduling.interval import ensure_utc

NAME_PATTERN = r"^[a-zA-Z\s'-]+$"
PHONE_PATTERN = r"^[\d\s\-\+\(\)]+$"


def require_offset(value: datetime) -> datetime:
    """Reject naive timestamps and normalise the rest to UTC"""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("timestamp must include a UTC offset, e.g. 2025-01-20T09:00:00Z")
    return ensure_utc(value)


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class BookingCreate(BaseModel):
    """
    Public booking request.
    end_at is accepted for compatibility with older clients but never used:
    it is always recomputed from the service duration.
    """
    provider_id: UUID
    service_id: UUID
    start_at: datetime
    end_at: Optional[datetime] = Field(None, description="Ignored; derived from the service duration")

    client_name: str = Field(..., min_length=2, max_length=100, pattern=NAME_PATTERN)
    client_email: Optional[EmailStr] = None
    client_phone: Optional[str] = Field(None, min_length=10, max_length=20, pattern=PHONE_PATTERN)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("client_name", "client_email", "client_phone", "notes", mode="before")
    @classmethod
    def clean_text(cls, v, info: ValidationInfo):
        if isinstance(v, str):
            v = v.strip()
            # Blank optional fields come from untouched form inputs
            if not v and info.field_name != "client_name":
                return None
        return v

    @field_validator("client_email")
    @classmethod
    def validate_email_length(cls, v):
        if v is not None and len(v) > 255:
            raise ValueError("client_email must be at most 255 characters")
        return v

    @field_validator("start_at")
    @classmethod
    def validate_start_at(cls, v):
        return require_offset(v)

    @model_validator(mode="after")
    def require_contact(self):
        if not self.client_email and not self.client_phone:
            raise ValueError("client_email or client_phone is required")
        return self


class RescheduleProposalCreate(BaseModel):
    """Provider offers the client one or more new start times"""
    options: List[datetime] = Field(..., min_length=1, max_length=10)

    @field_validator("options")
    @classmethod
    def validate_options(cls, v):
        starts = [require_offset(start) for start in v]
        if len(set(starts)) != len(starts):
            raise ValueError("options must not repeat a start time")
        return sorted(starts)


class RescheduleConfirm(BaseModel):
    option_id: UUID


# ============================================================================
# Response Schemas (for outgoing data)
# ============================================================================

class BookingOut(BaseModel):
    """Booking as returned to callers"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    provider_id: UUID
    service_id: UUID
    client_name: str
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None
    start_at: datetime
    end_at: datetime
    status: str
    created_at: Optional[datetime] = None

    @field_validator("start_at", "end_at", "created_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v) if v is not None else v


class BookingResult(BaseModel):
    """Discriminated result of a booking commit"""
    success: bool
    booking: Optional[BookingOut] = None
    cancel_token: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class CancellationResult(BaseModel):
    success: bool
    booking_id: Optional[UUID] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class RescheduleOptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    start_at: datetime
    end_at: datetime

    @field_validator("start_at", "end_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)


class RescheduleProposalResult(BaseModel):
    """Outstanding reschedule proposal, as shown to the provider and the client"""
    success: bool
    booking_id: Optional[UUID] = None
    token: Optional[str] = None
    expires_at: Optional[datetime] = None
    options: List[RescheduleOptionOut] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
