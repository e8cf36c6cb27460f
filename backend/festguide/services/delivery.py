"""Delivery engine - preference gating, device fan-out and delivery logging.

Scalability Design:
- Audience is split into fixed-size batches (DEFAULT_BATCH_SIZE users)
- Every user in a batch is processed concurrently; the next batch starts only
  after the whole batch finished, which caps load on the push provider and
  the database
- Each repository call opens its own session, so concurrent users never share
  a session

Failure Isolation:
- A device failure is logged and recorded; other devices and users continue
- Permanent provider failures (invalid/unregistered token) retire the device
- No retries: delivery is at most once per invocation
"""
import asyncio
import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional

from ..context import CallContext
from ..models.device_token import DeviceToken
from ..schemas.schedule_change import ScheduleChangeNotification
from ..utils.db_utils import utcnow
from .audience import AudienceResolver
from .device_registry import DeviceRegistry
from .notification_history import NotificationHistory
from .preference_store import PreferenceStore, is_in_quiet_hours, notification_type_enabled
from .push_provider import PermanentDeliveryError, PushMessage, PushProvider

logger = logging.getLogger(__name__)

# Users dispatched concurrently per batch
DEFAULT_BATCH_SIZE = 100

SCHEDULE_CHANGE_TYPE = "schedule_change"


@dataclass
class DeliveryReport:
    """Counters describing what a send did."""
    users: int = 0  # Users considered
    skipped: int = 0  # Users gated out by preferences or quiet hours
    attempted: int = 0  # Device sends attempted (= log rows written)
    delivered: int = 0
    failed: int = 0
    deactivated: int = 0  # Devices retired after a permanent failure
    errors: int = 0  # Users or devices whose processing raised unexpectedly

    def merge(self, other: "DeliveryReport") -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))


class DeliveryEngine:
    """Sends notifications to users' devices and records every attempt."""

    def __init__(
        self,
        devices: DeviceRegistry,
        preferences: PreferenceStore,
        history: NotificationHistory,
        audience: AudienceResolver,
        provider: PushProvider,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._devices = devices
        self._preferences = preferences
        self._history = history
        self._audience = audience
        self._provider = provider
        self._batch_size = batch_size
        self._clock = clock

    async def send_to_user(
        self,
        ctx: CallContext,
        user_id: int,
        notification_type: str,
        title: str,
        body: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> DeliveryReport:
        """Send one notification to every active device of a user.

        Gates, in order: push enabled, notification type enabled, outside
        quiet hours. A user stopped by a gate gets no provider call and no log
        row.

        Returns:
            DeliveryReport for this user
        """
        report = DeliveryReport(users=1)

        prefs = await self._preferences.get_preferences(user_id)
        if not prefs.push_enabled:
            logger.debug(f"Push notifications disabled for user {user_id}, skipping")
            report.skipped = 1
            return report

        if not notification_type_enabled(prefs, notification_type):
            logger.debug(f"Notification type {notification_type} disabled for user {user_id}, skipping")
            report.skipped = 1
            return report

        if is_in_quiet_hours(prefs, self._clock()):
            logger.debug(f"User {user_id} is in quiet hours, skipping")
            report.skipped = 1
            return report

        devices = await self._devices.get_active_devices(user_id)
        if not devices:
            logger.debug(f"No active devices for user {user_id}")
            return report

        message = PushMessage(
            title=title,
            body=body,
            notification_type=notification_type,
            data=dict(data or {}),
        )

        results = await asyncio.gather(
            *[
                self._deliver_to_device(
                    ctx, user_id, device, message, related_entity_type, related_entity_id,
                )
                for device in devices
            ],
            return_exceptions=True,
        )

        for device, result in zip(devices, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"Delivery bookkeeping failed for device {device.id} of user {user_id}: {result!r}")
                report.errors += 1
            else:
                report.merge(result)

        return report

    async def _deliver_to_device(
        self,
        ctx: CallContext,
        user_id: int,
        device: DeviceToken,
        message: PushMessage,
        related_entity_type: Optional[str],
        related_entity_id: Optional[int],
    ) -> DeliveryReport:
        """Attempt one device, then record the outcome."""
        report = DeliveryReport(attempted=1)
        sent_at = self._clock()
        error_message = None
        permanent = False

        try:
            await self._provider.send(device.token, device.platform, message)
        except PermanentDeliveryError as e:
            error_message = f"{type(e).__name__}: {e}"
            permanent = True
            logger.warning(f"Permanent delivery failure for device {device.id}, deactivating: {error_message}")
        except Exception as e:
            error_message = f"{type(e).__name__}: {e}"
            logger.warning(f"Failed to send notification to device {device.id}: {error_message}")

        delivered = error_message is None
        await self._history.record(
            ctx,
            user_id=user_id,
            device_token_id=device.id,
            notification_type=message.notification_type,
            title=message.title,
            body=message.body,
            is_delivered=delivered,
            sent_at=sent_at,
            error_message=error_message,
            data=message.data,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
        )

        if delivered:
            report.delivered = 1
            await self._devices.touch(device.id, sent_at)
            logger.info(f"Notification sent to user {user_id} on device {device.id}")
        else:
            report.failed = 1

        # The log row is already written; a failed deactivation only counts as an error
        if permanent:
            try:
                if await self._devices.deactivate(ctx, device.id):
                    report.deactivated = 1
            except Exception as e:
                logger.error(f"Failed to deactivate device {device.id}: {e!r}")
                report.errors += 1

        return report

    async def send_to_users(
        self,
        ctx: CallContext,
        user_ids: Iterable[int],
        notification_type: str,
        title: str,
        body: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> DeliveryReport:
        """Fan a notification out to many users in bounded concurrent batches.

        Batches run strictly one after another; cancellation is checked
        before each batch. A failure for one user is logged and counted and
        never stops the others.
        """
        ids = list(dict.fromkeys(user_ids))
        report = DeliveryReport()

        for start in range(0, len(ids), self._batch_size):
            ctx.raise_if_cancelled()
            batch = ids[start:start + self._batch_size]

            results = await asyncio.gather(
                *[
                    self.send_to_user(
                        ctx, user_id, notification_type, title, body,
                        related_entity_type, related_entity_id, data,
                    )
                    for user_id in batch
                ],
                return_exceptions=True,
            )

            for user_id, result in zip(batch, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, BaseException):
                    logger.error(f"Failed to notify user {user_id}: {result!r}")
                    report.users += 1
                    report.errors += 1
                else:
                    report.merge(result)

        return report

    async def send_schedule_change(
        self,
        ctx: CallContext,
        change: ScheduleChangeNotification,
    ) -> DeliveryReport:
        """Notify everyone interested in a schedule change.

        Audience resolution errors propagate to the caller.
        """
        user_ids = await self._audience.resolve(change, ctx)
        if not user_ids:
            logger.debug(f"No audience for {change.change_type} on edition {change.edition_id}")
            return DeliveryReport()

        data = {
            "editionId": str(change.edition_id),
            "changeType": change.change_type,
        }
        if change.engagement_id is not None:
            data["engagementId"] = str(change.engagement_id)
        if change.time_slot_id is not None:
            data["timeSlotId"] = str(change.time_slot_id)

        report = await self.send_to_users(
            ctx,
            user_ids,
            SCHEDULE_CHANGE_TYPE,
            f"Schedule Update: {change.artist_name or 'Performance'}",
            change.message,
            related_entity_type="Edition",
            related_entity_id=change.edition_id,
            data=data,
        )

        logger.info(
            f"Schedule change notification for edition {change.edition_id} sent to {len(user_ids)} users: "
            f"{report.delivered} delivered, {report.failed} failed, {report.skipped} skipped"
        )
        return report
