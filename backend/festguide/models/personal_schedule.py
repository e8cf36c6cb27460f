"""Personal schedule models - read-side mirror of attendee saved performances.

Owned by the personal-schedule component; this service only reads them to
decide who is interested in a schedule change.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class PersonalSchedule(Base):
    """An attendee's saved schedule for one festival edition."""

    __tablename__ = "personal_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    edition_id = Column(Integer, nullable=False, index=True)
    name = Column(String(100), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    entries = relationship("PersonalScheduleEntry", back_populates="schedule", cascade="all, delete-orphan")


class PersonalScheduleEntry(Base):
    """A single saved engagement inside a personal schedule."""

    __tablename__ = "personal_schedule_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    personal_schedule_id = Column(Integer, ForeignKey("personal_schedules.id"), nullable=False, index=True)
    engagement_id = Column(Integer, nullable=False, index=True)
    notifications_enabled = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationship
    schedule = relationship("PersonalSchedule", back_populates="entries")
