"""Notification log - delivery records and attendee inbox state."""
import json
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..context import CallContext
from ..errors import ForbiddenError
from ..models.notification_log import NotificationLog
from ..utils.db_utils import retry_on_lock, utcnow

logger = logging.getLogger(__name__)


class NotificationHistory:
    """Writes delivery records and serves them back as an inbox."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(
        self,
        ctx: CallContext,
        user_id: int,
        device_token_id: Optional[int],
        notification_type: str,
        title: str,
        body: str,
        is_delivered: bool,
        sent_at: datetime,
        error_message: Optional[str] = None,
        data: Optional[Dict[str, str]] = None,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
    ) -> NotificationLog:
        """Insert the log row for one completed delivery attempt."""
        async def _insert() -> NotificationLog:
            now = utcnow()
            log = NotificationLog(
                user_id=user_id,
                device_token_id=device_token_id,
                notification_type=notification_type,
                title=title,
                body=body,
                data_payload=json.dumps(data) if data else None,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
                sent_at=sent_at,
                is_delivered=is_delivered,
                error_message=error_message,
                created_at=now,
                created_by=ctx.principal.audit_tag,
                modified_at=now,
                modified_by=ctx.principal.audit_tag,
            )
            async with self._session_factory() as session:
                session.add(log)
                await session.commit()
            return log

        return await retry_on_lock(_insert)

    async def get_notifications(self, user_id: int, limit: int = 50, offset: int = 0) -> List[NotificationLog]:
        """A page of the user's notifications, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(NotificationLog)
                .where(NotificationLog.user_id == user_id)
                .order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc())
                .limit(limit)
                .offset(offset)
            )
            return list(result.scalars().all())

    async def get_unread_count(self, user_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(NotificationLog.id))
                .where(NotificationLog.user_id == user_id, NotificationLog.read_at.is_(None))
            )
            return result.scalar() or 0

    async def get_notification(self, notification_id: int) -> Optional[NotificationLog]:
        async with self._session_factory() as session:
            return await session.get(NotificationLog, notification_id)

    async def mark_as_read(self, ctx: CallContext, user_id: int, notification_id: int) -> None:
        """Mark one of the user's notifications as read.

        Marking an already-read notification again just refreshes read_at.

        Raises:
            ForbiddenError: notification does not exist or belongs to someone else
        """
        log = await self.get_notification(notification_id)
        if log is None or log.user_id != user_id:
            raise ForbiddenError("Notification not found or does not belong to user.")

        await self._mark_read(ctx, NotificationLog.id == notification_id)

    async def mark_all_as_read(self, ctx: CallContext, user_id: int) -> int:
        """Mark every unread notification of the user as read. Returns the count."""
        count = await self._mark_read(
            ctx,
            NotificationLog.user_id == user_id,
            NotificationLog.read_at.is_(None),
        )
        logger.debug(f"Marked {count} notifications read for user {user_id}")
        return count

    async def cleanup_old_logs(self, days_to_keep: int) -> int:
        """Delete log rows sent more than days_to_keep days ago."""
        cutoff = utcnow() - timedelta(days=days_to_keep)

        async def _delete() -> int:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(NotificationLog).where(NotificationLog.sent_at < cutoff)
                )
                await session.commit()
                return result.rowcount

        deleted = await retry_on_lock(_delete)
        if deleted:
            logger.info(f"Cleaned up {deleted} notification log rows older than {days_to_keep} days")
        return deleted

    async def _mark_read(self, ctx: CallContext, *conditions) -> int:
        async def _update() -> int:
            now = utcnow()
            async with self._session_factory() as session:
                result = await session.execute(
                    update(NotificationLog)
                    .where(*conditions)
                    .values(read_at=now, modified_at=now, modified_by=ctx.principal.audit_tag)
                )
                await session.commit()
                return result.rowcount

        return await retry_on_lock(_update)
