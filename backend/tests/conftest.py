import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pytest
from sqlalchemy import func, select

from festguide.context import CallContext
from festguide.database import create_engine_for, create_tables, make_session_factory
from festguide.models import DeviceToken, NotificationLog, PersonalSchedule, PersonalScheduleEntry
from festguide.services.container import build_services
from festguide.services.push_provider import PushMessage, PushProvider


class RecordingPushProvider(PushProvider):
    """Provider double that records sends and fails chosen tokens."""

    def __init__(self, delay: float = 0):
        self.calls: List[Tuple[str, str, PushMessage]] = []
        self.failures: Dict[str, Exception] = {}
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, token: str, platform: str, message: PushMessage) -> None:
        self.calls.append((token, platform, message))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            error = self.failures.get(token)
            if error is not None:
                raise error
        finally:
            self.in_flight -= 1


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def provider():
    return RecordingPushProvider()


@pytest.fixture
def services(session_factory, provider):
    return build_services(session_factory, provider, batch_size=2, page_size=2)


@pytest.fixture
def system_ctx():
    return CallContext.system("tests")


def user_ctx(user_id: int) -> CallContext:
    return CallContext.for_user(user_id)


async def add_schedule(
    session_factory,
    user_id: int,
    edition_id: int,
    engagement_ids: Iterable[int] = (),
    is_deleted: bool = False,
    muted: Iterable[int] = (),
) -> None:
    """Seed a personal schedule with saved engagements."""
    muted = set(muted)
    async with session_factory() as session:
        schedule = PersonalSchedule(user_id=user_id, edition_id=edition_id, is_deleted=is_deleted)
        schedule.entries = [
            PersonalScheduleEntry(engagement_id=eid, notifications_enabled=eid not in muted)
            for eid in engagement_ids
        ]
        session.add(schedule)
        await session.commit()


async def count_logs(session_factory, user_id: Optional[int] = None) -> int:
    async with session_factory() as session:
        query = select(func.count(NotificationLog.id))
        if user_id is not None:
            query = query.where(NotificationLog.user_id == user_id)
        return (await session.execute(query)).scalar()


async def all_logs(session_factory) -> List[NotificationLog]:
    async with session_factory() as session:
        result = await session.execute(select(NotificationLog).order_by(NotificationLog.id))
        return list(result.scalars().all())


async def get_device(session_factory, device_id: int) -> DeviceToken:
    async with session_factory() as session:
        return await session.get(DeviceToken, device_id)


def fixed_clock(value: datetime):
    return lambda: value
