# ===== slotbook/models/action_token.py =====
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from slotbook.models.base import Base


class ActionToken(Base):
    """One-time link token letting a client act on their booking"""
    __tablename__ = "action_tokens"

    token = Column(String(64), primary_key=True)
    type = Column(String(20), nullable=False, default="cancel")
    booking_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
