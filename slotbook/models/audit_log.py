# ===== slotbook/models/audit_log.py =====
from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.sql import func
from slotbook.models.base import Base
import uuid


class AuditLog(Base):
    """Append-only record of changes to bookings"""
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    entity_type = Column(String(50), nullable=False, index=True)  # booking, availability
    entity_id = Column(String(64), nullable=False, index=True)
    action = Column(String(20), nullable=False)  # create, cancel, reschedule

    changes = Column(JSON, nullable=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
