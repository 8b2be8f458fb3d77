# ===== slotbook/models/busy_block.py =====
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
from slotbook.models.base import Base
import uuid


class BusyBlock(Base):
    """Ad-hoc time the provider is unavailable (no buffers applied)"""
    __tablename__ = "busy_blocks"
    __table_args__ = (
        Index("idx_busy_blocks_provider_range", "provider_id", "start_at", "end_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False
    )

    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    title = Column(String(200), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
