# slotbook/models/service.py
"""
Service Model - bookable offerings of a provider.
duration_minutes is the slot length and the only source of a booking's end_at.
"""
from sqlalchemy import Column, String, Integer, ForeignKey, Boolean, DateTime, Text, Uuid
from sqlalchemy.sql import func
import uuid
from slotbook.models.base import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, provider_id={self.provider_id})>"
