"""Database models."""
from .device_token import DeviceToken
from .notification_preference import NotificationPreference
from .notification_log import NotificationLog
from .personal_schedule import PersonalSchedule, PersonalScheduleEntry

__all__ = ["DeviceToken", "NotificationPreference", "NotificationLog", "PersonalSchedule", "PersonalScheduleEntry"]
