# ===== slotbook/models/booking.py =====
import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
from slotbook.models.base import Base


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    PENDING_RESCHEDULE = "pending_reschedule"
    COMPLETED = "completed"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("idx_bookings_provider_range", "provider_id", "start_at", "end_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    provider_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)

    # Client info
    client_name = Column(String(100), nullable=False)
    client_email = Column(String(255), nullable=True)
    client_phone = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

    # end_at is always start_at + service duration at write time
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)

    # Cancelled rows are kept for audit and ignored by conflict checks
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Booking(id={self.id}, provider_id={self.provider_id}, start_at={self.start_at})>"
