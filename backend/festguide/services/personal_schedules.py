"""Personal-schedule lookups used as the audience signal."""
from typing import List, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.personal_schedule import PersonalSchedule, PersonalScheduleEntry


class PersonalScheduleDirectory(Protocol):
    """What the notification subsystem needs from the personal-schedule component."""

    async def get_user_ids_for_engagement(self, engagement_id: int) -> List[int]:
        """Users who saved this engagement and did not mute it."""
        ...

    async def get_user_ids_for_edition(self, edition_id: int, limit: int, offset: int) -> List[int]:
        """One page of users with any personal schedule for the edition."""
        ...


class SqlPersonalScheduleDirectory:
    """Directory backed by the personal_schedules tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_user_ids_for_engagement(self, engagement_id: int) -> List[int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PersonalSchedule.user_id)
                .join(PersonalScheduleEntry, PersonalScheduleEntry.personal_schedule_id == PersonalSchedule.id)
                .where(
                    PersonalScheduleEntry.engagement_id == engagement_id,
                    PersonalScheduleEntry.is_deleted.is_(False),
                    PersonalScheduleEntry.notifications_enabled.is_(True),
                    PersonalSchedule.is_deleted.is_(False),
                )
                .distinct()
                .order_by(PersonalSchedule.user_id)
            )
            return list(result.scalars().all())

    async def get_user_ids_for_edition(self, edition_id: int, limit: int, offset: int) -> List[int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PersonalSchedule.user_id)
                .where(
                    PersonalSchedule.edition_id == edition_id,
                    PersonalSchedule.is_deleted.is_(False),
                )
                .distinct()
                # Stable ordering keeps offset pages from overlapping or skipping
                .order_by(PersonalSchedule.user_id)
                .limit(limit)
                .offset(offset)
            )
            return list(result.scalars().all())
