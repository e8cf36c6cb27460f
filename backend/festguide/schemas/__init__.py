"""Pydantic schemas for API request/response models."""
from .device import (
    DeviceRegisterRequest,
    DeviceResponse,
)
from .notification import (
    NotificationResponse,
    UnreadCountResponse,
)
from .preferences import (
    PreferencesResponse,
    PreferencesUpdate,
)
from .schedule_change import ScheduleChangeNotification

__all__ = [
    "DeviceRegisterRequest",
    "DeviceResponse",
    "NotificationResponse",
    "UnreadCountResponse",
    "PreferencesResponse",
    "PreferencesUpdate",
    "ScheduleChangeNotification",
]
