"""
Pydantic schemas for slot listing and provider schedule management
"""
from datetime import datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from slotbook.scheduling.interval import ensure_utc
from slotbook.scheduling.rules import parse_local_time
from slotbook.schemas.booking import require_offset


class SlotOut(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)


class AvailableSlotsResponse(BaseModel):
    """Slots for one provider, service and date; empty when nothing is free"""
    slots: List[SlotOut] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None


class AvailabilityRuleIn(BaseModel):
    """One weekly rule as entered by the provider"""
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday ... 6=Saturday")
    start_time_local: time
    end_time_local: time

    @field_validator("start_time_local", "end_time_local", mode="before")
    @classmethod
    def parse_time(cls, v):
        if isinstance(v, str):
            return parse_local_time(v)
        return v

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time_local <= self.start_time_local:
            raise ValueError("end_time_local must be after start_time_local")
        return self


class AvailabilitySettingsIn(BaseModel):
    buffer_before_minutes: int = Field(0, ge=0, le=120)
    buffer_after_minutes: int = Field(0, ge=0, le=120)
    min_notice_minutes: int = Field(120, ge=0)


class BusyBlockIn(BaseModel):
    start_at: datetime
    end_at: datetime
    title: Optional[str] = Field(None, max_length=200)

    @field_validator("start_at", "end_at")
    @classmethod
    def validate_offset(cls, v):
        return require_offset(v)

    @model_validator(mode="after")
    def check_order(self):
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self
