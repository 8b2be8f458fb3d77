# ===== slotbook/models/profile.py =====
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.sql import func
from slotbook.models.base import Base
import uuid


class Profile(Base):
    """A service provider with a public booking link (/{username})"""
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(30), nullable=False, unique=True, index=True)
    full_name = Column(String(100), nullable=True)

    # IANA name; slots are resolved in this zone
    timezone = Column(String(50), nullable=True, default="UTC")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Profile(id={self.id}, username={self.username})>"
