"""Preference store - per-user notification settings and quiet hours."""
import logging
from dataclasses import dataclass, fields, replace
from datetime import datetime, time, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..context import CallContext
from ..models.notification_preference import NotificationPreference
from ..utils.db_utils import retry_on_lock, utcnow

logger = logging.getLogger(__name__)

# Notification type -> preference flag that gates it
TYPE_TOGGLES = {
    "schedule_change": "schedule_changes_enabled",
    "reminder": "reminders_enabled",
    "announcement": "announcements_enabled",
}


@dataclass(frozen=True)
class Preferences:
    """Effective notification settings for one user."""
    push_enabled: bool = True
    email_enabled: bool = True
    schedule_changes_enabled: bool = True
    reminders_enabled: bool = True
    reminder_minutes_before: int = 30
    announcements_enabled: bool = True
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone_id: str = "UTC"

    @classmethod
    def defaults(cls) -> "Preferences":
        return cls()

    @classmethod
    def from_model(cls, row: NotificationPreference) -> "Preferences":
        return cls(**{f.name: getattr(row, f.name) for f in fields(cls)})


FIELD_NAMES = frozenset(f.name for f in fields(Preferences))


def resolve_timezone(timezone_id: Optional[str]) -> ZoneInfo:
    """Look up an IANA timezone, falling back to UTC for unknown names."""
    try:
        return ZoneInfo(timezone_id or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{timezone_id}', evaluating quiet hours in UTC")
        return ZoneInfo("UTC")


def is_in_quiet_hours(prefs: Preferences, now_utc: datetime) -> bool:
    """Check whether now_utc falls inside the user's quiet-hours window.

    The window is evaluated on the user's local wall clock, start inclusive and
    end exclusive. A start later than the end wraps past midnight
    (23:00-06:00). Without both bounds there are no quiet hours.

    Args:
        prefs: The user's preferences
        now_utc: Current instant; naive values are taken as UTC

    Returns:
        True if notifications should be suppressed right now
    """
    start, end = prefs.quiet_hours_start, prefs.quiet_hours_end
    if start is None or end is None:
        return False

    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=timezone.utc)

    local_now = now_utc.astimezone(resolve_timezone(prefs.timezone_id)).time().replace(tzinfo=None)

    if start > end:
        return local_now >= start or local_now < end
    return start <= local_now < end


def check_quiet_hours_change(changes: Dict[str, Any]) -> None:
    """Reject updates that would leave quiet hours half set, empty or offset-aware.

    Raises:
        ValueError: if the quiet-hours keys in changes are not a valid pair
    """
    has_start = "quiet_hours_start" in changes
    has_end = "quiet_hours_end" in changes
    if not has_start and not has_end:
        return

    start, end = changes.get("quiet_hours_start"), changes.get("quiet_hours_end")
    if has_start != has_end or (start is None) != (end is None):
        raise ValueError("Both quiet hours start and end must be provided, or neither.")
    if start is None:
        return
    if start.tzinfo is not None or end.tzinfo is not None:
        raise ValueError("Quiet hours must be local times without a UTC offset.")
    if start == end:
        raise ValueError("Quiet hours start and end must differ.")


def notification_type_enabled(prefs: Preferences, notification_type: str) -> bool:
    """Per-type toggle; types without a toggle are always allowed."""
    flag = TYPE_TOGGLES.get(notification_type)
    if flag is None:
        return True
    return getattr(prefs, flag)


class PreferenceStore:
    """Reads and patch-updates notification preferences."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_preferences(self, user_id: int) -> Preferences:
        """Stored preferences for a user, or the defaults if none were saved."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(NotificationPreference).where(NotificationPreference.user_id == user_id)
            )
            row = result.scalar_one_or_none()

        if row is None:
            return Preferences.defaults()
        return Preferences.from_model(row)

    async def update_preferences(
        self,
        ctx: CallContext,
        user_id: int,
        changes: Dict[str, Any],
    ) -> Preferences:
        """Apply a partial update; keys absent from changes keep their value.

        The row is created on the first write, starting from the defaults.
        """
        unknown = set(changes) - FIELD_NAMES
        if unknown:
            raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}")
        check_quiet_hours_change(changes)

        async def _apply() -> Preferences:
            now = utcnow()
            async with self._session_factory() as session:
                result = await session.execute(
                    select(NotificationPreference).where(NotificationPreference.user_id == user_id)
                )
                row = result.scalar_one_or_none()

                if row is None:
                    initial = replace(Preferences.defaults(), **changes)
                    row = NotificationPreference(
                        user_id=user_id,
                        created_at=now,
                        created_by=ctx.principal.audit_tag,
                        **{name: getattr(initial, name) for name in FIELD_NAMES},
                    )
                    session.add(row)
                else:
                    for name, value in changes.items():
                        setattr(row, name, value)

                row.modified_at = now
                row.modified_by = ctx.principal.audit_tag
                await session.commit()
                await session.refresh(row)
                return Preferences.from_model(row)

        prefs = await retry_on_lock(_apply)
        logger.info(f"Notification preferences updated for user {user_id}")
        return prefs
