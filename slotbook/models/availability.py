# ===== slotbook/models/availability.py =====
from sqlalchemy import Column, Integer, Time, ForeignKey, CheckConstraint, Uuid
from slotbook.models.base import Base
import uuid


class AvailabilityRule(Base):
    """
    Recurring weekly availability. Replaced as a whole whenever the provider
    saves their schedule.
    """
    __tablename__ = "availability_rules"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_rules_day"),
        CheckConstraint("end_time_local > start_time_local", name="ck_availability_rules_order"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time_local = Column(Time, nullable=False)
    end_time_local = Column(Time, nullable=False)


class AvailabilitySettings(Base):
    """Buffer and notice policy, one row per provider"""
    __tablename__ = "availability_settings"

    provider_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True
    )

    buffer_before_minutes = Column(Integer, nullable=False, default=0)
    buffer_after_minutes = Column(Integer, nullable=False, default=0)
    min_notice_minutes = Column(Integer, nullable=False, default=120)
