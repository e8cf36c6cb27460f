"""Wiring of the notification services around one session factory."""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .audience import AudienceResolver, DEFAULT_PAGE_SIZE
from .delivery import DeliveryEngine, DEFAULT_BATCH_SIZE
from .device_registry import DeviceRegistry
from .notification_history import NotificationHistory
from .personal_schedules import PersonalScheduleDirectory, SqlPersonalScheduleDirectory
from .preference_store import PreferenceStore
from .push_provider import PushProvider


@dataclass
class NotificationServices:
    """Everything the API layer and other backend components call into."""
    devices: DeviceRegistry
    preferences: PreferenceStore
    history: NotificationHistory
    audience: AudienceResolver
    delivery: DeliveryEngine
    provider: PushProvider


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    provider: PushProvider,
    batch_size: int = DEFAULT_BATCH_SIZE,
    page_size: int = DEFAULT_PAGE_SIZE,
    directory: Optional[PersonalScheduleDirectory] = None,
) -> NotificationServices:
    """Build the service graph. directory defaults to the SQL-backed one."""
    devices = DeviceRegistry(session_factory)
    preferences = PreferenceStore(session_factory)
    history = NotificationHistory(session_factory)
    audience = AudienceResolver(directory or SqlPersonalScheduleDirectory(session_factory), page_size=page_size)
    delivery = DeliveryEngine(
        devices=devices,
        preferences=preferences,
        history=history,
        audience=audience,
        provider=provider,
        batch_size=batch_size,
    )
    return NotificationServices(
        devices=devices,
        preferences=preferences,
        history=history,
        audience=audience,
        delivery=delivery,
        provider=provider,
    )
