"""Device registry - device-token lifecycle per user."""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..context import CallContext
from ..errors import ForbiddenError
from ..models.device_token import DeviceToken
from ..utils.db_utils import retry_on_lock, utcnow

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Registers, lists and retires push device tokens.

    Tokens are unique across users: presenting a known token again (reinstall,
    account switch) moves the existing row to the caller instead of adding a
    second live row. Rows are only ever deactivated, never deleted.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def register_device(
        self,
        ctx: CallContext,
        user_id: int,
        token: str,
        platform: str,
        device_name: Optional[str] = None,
    ) -> DeviceToken:
        """Upsert a device by token value and make it active for user_id."""
        platform = platform.lower()

        async def _upsert() -> DeviceToken:
            now = utcnow()
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DeviceToken).where(DeviceToken.token == token)
                )
                device = result.scalar_one_or_none()

                if device:
                    if device.user_id != user_id:
                        logger.info(f"Device {device.id} reassigned from user {device.user_id} to user {user_id}")
                    device.user_id = user_id
                    device.platform = platform
                    device.device_name = device_name
                    device.is_active = True
                    device.last_used_at = now
                    device.modified_at = now
                    device.modified_by = ctx.principal.audit_tag
                else:
                    device = DeviceToken(
                        user_id=user_id,
                        token=token,
                        platform=platform,
                        device_name=device_name,
                        is_active=True,
                        last_used_at=now,
                        created_at=now,
                        created_by=ctx.principal.audit_tag,
                        modified_at=now,
                        modified_by=ctx.principal.audit_tag,
                    )
                    session.add(device)

                await session.commit()
                await session.refresh(device)
                return device

        try:
            device = await retry_on_lock(_upsert)
        except IntegrityError:
            # Concurrent first registration of the same token; the row exists now
            device = await retry_on_lock(_upsert)
        logger.info(f"Device registered for user {user_id} on platform {platform}")
        return device

    async def get_devices(self, user_id: int) -> List[DeviceToken]:
        """All devices of a user, active or not, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DeviceToken)
                .where(DeviceToken.user_id == user_id)
                .order_by(DeviceToken.created_at.desc(), DeviceToken.id.desc())
            )
            return list(result.scalars().all())

    async def get_active_devices(self, user_id: int) -> List[DeviceToken]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DeviceToken)
                .where(DeviceToken.user_id == user_id, DeviceToken.is_active.is_(True))
                .order_by(DeviceToken.id)
            )
            return list(result.scalars().all())

    async def get_device(self, device_id: int) -> Optional[DeviceToken]:
        async with self._session_factory() as session:
            return await session.get(DeviceToken, device_id)

    async def unregister_device(self, ctx: CallContext, user_id: int, device_id: int) -> None:
        """Deactivate one of the caller's devices.

        Raises:
            ForbiddenError: device does not exist or belongs to someone else
        """
        device = await self.get_device(device_id)
        if device is None or device.user_id != user_id:
            raise ForbiddenError("Device not found or does not belong to user.")

        await self.deactivate(ctx, device_id)
        logger.info(f"Device {device_id} unregistered for user {user_id}")

    async def unregister_by_token(self, ctx: CallContext, token: str) -> bool:
        """Deactivate a device by token value.

        Used by provider feedback and logout flows that have no authenticated
        user; ctx carries the system principal responsible. Unknown tokens are
        ignored.

        Returns:
            True if an active device was deactivated
        """
        changed = await self._set_inactive(ctx, DeviceToken.token == token)
        if changed:
            logger.info(f"Device token {token[:16]}... unregistered by {ctx.principal.audit_tag}")
        return changed > 0

    async def deactivate(self, ctx: CallContext, device_id: int) -> bool:
        """Soft-deactivate a device. Returns False if it was already inactive."""
        changed = await self._set_inactive(ctx, DeviceToken.id == device_id)
        return changed > 0

    async def touch(self, device_id: int, when: Optional[datetime] = None) -> None:
        """Refresh last_used_at after a successful delivery."""
        when = when or utcnow()

        async def _touch():
            async with self._session_factory() as session:
                await session.execute(
                    update(DeviceToken)
                    .where(DeviceToken.id == device_id)
                    .values(last_used_at=when)
                )
                await session.commit()

        await retry_on_lock(_touch)

    async def _set_inactive(self, ctx: CallContext, condition) -> int:
        async def _update() -> int:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(DeviceToken)
                    .where(condition, DeviceToken.is_active.is_(True))
                    .values(
                        is_active=False,
                        modified_at=utcnow(),
                        modified_by=ctx.principal.audit_tag,
                    )
                )
                await session.commit()
                return result.rowcount

        return await retry_on_lock(_update)
