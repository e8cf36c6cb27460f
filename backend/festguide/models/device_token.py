"""DeviceToken model - push delivery addresses registered by attendees."""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from ..database import Base
from ..utils.db_utils import utcnow

PLATFORMS = ("ios", "android", "web")


class DeviceToken(Base):
    """One installed app instance that can receive push notifications."""

    __tablename__ = "device_tokens"
    __table_args__ = (
        CheckConstraint("platform IN ('ios', 'android', 'web')", name="ck_device_tokens_platform"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    token = Column(String(512), unique=True, nullable=False, index=True)
    platform = Column(String(20), nullable=False)  # ios, android, web
    device_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    created_by = Column(String(100), nullable=True)  # Principal audit tag
    modified_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    modified_by = Column(String(100), nullable=True)
