"""NotificationPreference model - per-user notification settings."""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Time

from ..database import Base
from ..utils.db_utils import utcnow


class NotificationPreference(Base):
    """Notification settings for one user. Absent row means defaults."""

    __tablename__ = "notification_preferences"
    __table_args__ = (
        CheckConstraint(
            "(quiet_hours_start IS NULL AND quiet_hours_end IS NULL) OR "
            "(quiet_hours_start IS NOT NULL AND quiet_hours_end IS NOT NULL)",
            name="ck_notification_preferences_quiet_hours",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, unique=True, nullable=False, index=True)
    push_enabled = Column(Boolean, nullable=False, default=True)
    email_enabled = Column(Boolean, nullable=False, default=True)
    schedule_changes_enabled = Column(Boolean, nullable=False, default=True)
    reminders_enabled = Column(Boolean, nullable=False, default=True)
    reminder_minutes_before = Column(Integer, nullable=False, default=30)
    announcements_enabled = Column(Boolean, nullable=False, default=True)
    quiet_hours_start = Column(Time, nullable=True)  # Local wall-clock time
    quiet_hours_end = Column(Time, nullable=True)
    timezone_id = Column(String(100), nullable=False, default="UTC")  # IANA name

    created_at = Column(DateTime, nullable=False, default=utcnow)
    created_by = Column(String(100), nullable=True)
    modified_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    modified_by = Column(String(100), nullable=True)
