"""NotificationLog model - one row per attempted device delivery."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from ..database import Base
from ..utils.db_utils import utcnow


class NotificationLog(Base):
    """Record of a push attempt to one device, doubling as the attendee inbox."""

    __tablename__ = "notification_logs"
    __table_args__ = (
        Index("ix_notification_logs_user_sent", "user_id", "sent_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    device_token_id = Column(Integer, ForeignKey("device_tokens.id"), nullable=True)
    notification_type = Column(String(50), nullable=False)  # schedule_change, reminder, announcement
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    data_payload = Column(Text, nullable=True)  # JSON object of string values
    related_entity_type = Column(String(50), nullable=True)  # Edition, Engagement, TimeSlot
    related_entity_id = Column(Integer, nullable=True)
    sent_at = Column(DateTime, nullable=False, default=utcnow)
    is_delivered = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)
    read_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    created_by = Column(String(100), nullable=True)
    modified_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    modified_by = Column(String(100), nullable=True)
