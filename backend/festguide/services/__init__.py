"""Services for device registration, preferences, audience resolution and delivery."""
from .audience import AudienceResolver
from .container import NotificationServices, build_services
from .delivery import DeliveryEngine, DeliveryReport
from .device_registry import DeviceRegistry
from .notification_history import NotificationHistory
from .preference_store import PreferenceStore, Preferences, is_in_quiet_hours
from .scheduler import SchedulerService

__all__ = [
    "AudienceResolver",
    "NotificationServices",
    "build_services",
    "DeliveryEngine",
    "DeliveryReport",
    "DeviceRegistry",
    "NotificationHistory",
    "PreferenceStore",
    "Preferences",
    "is_in_quiet_hours",
    "SchedulerService",
]
