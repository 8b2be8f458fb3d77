# ===== slotbook/models/reschedule.py =====
import enum
import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from slotbook.models.base import Base


class ProposalStatus(str, enum.Enum):
    ACTIVE = "active"
    ACCEPTED = "accepted"
    SUPERSEDED = "superseded"
    CANCELLED = "cancelled"


class RescheduleProposal(Base):
    """New times offered by the provider; the client picks one through the token link"""
    __tablename__ = "reschedule_proposals"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    provider_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id"), nullable=False)

    token = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(String(20), nullable=False, default=ProposalStatus.ACTIVE.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class RescheduleOption(Base):
    __tablename__ = "reschedule_options"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    proposal_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("reschedule_proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # end_at is start_at + service duration when the proposal is made
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
