import asyncio
from typing import Dict, List

import pytest

from conftest import add_schedule
from festguide.context import CallContext
from festguide.schemas.schedule_change import ScheduleChangeNotification
from festguide.services.audience import AudienceResolver
from festguide.services.personal_schedules import SqlPersonalScheduleDirectory


class FakeDirectory:
    """In-memory directory that records the pages requested."""

    def __init__(self, edition_users: List[int], engagement_users: Dict[int, List[int]] = None):
        self.edition_users = edition_users
        self.engagement_users = engagement_users or {}
        self.page_requests = []

    async def get_user_ids_for_engagement(self, engagement_id):
        return list(self.engagement_users.get(engagement_id, []))

    async def get_user_ids_for_edition(self, edition_id, limit, offset):
        self.page_requests.append((limit, offset))
        return self.edition_users[offset:offset + limit]


def change(**kwargs):
    kwargs.setdefault("edition_id", 7)
    kwargs.setdefault("change_type", "schedule_published")
    kwargs.setdefault("message", "The schedule is out")
    return ScheduleChangeNotification(**kwargs)


async def test_edition_sweep_reads_every_page():
    directory = FakeDirectory([5, 1, 4, 2, 3])
    resolver = AudienceResolver(directory, page_size=2)

    users = await resolver.resolve(change(), CallContext.system("tests"))

    assert users == [1, 2, 3, 4, 5]
    assert directory.page_requests == [(2, 0), (2, 2), (2, 4)]


async def test_exact_multiple_of_page_size_reads_trailing_empty_page():
    directory = FakeDirectory([1, 2, 3, 4])
    resolver = AudienceResolver(directory, page_size=2)

    assert await resolver.resolve(change(), CallContext.system("tests")) == [1, 2, 3, 4]
    assert len(directory.page_requests) == 3


async def test_users_deduplicated_across_pages():
    directory = FakeDirectory([1, 2, 2, 3])
    resolver = AudienceResolver(directory, page_size=2)

    assert await resolver.resolve(change(), CallContext.system("tests")) == [1, 2, 3]


async def test_engagement_change_only_reaches_savers():
    directory = FakeDirectory([1, 2, 3], engagement_users={11: [3, 1, 3]})
    resolver = AudienceResolver(directory, page_size=2)

    users = await resolver.resolve(change(engagement_id=11), CallContext.system("tests"))

    assert users == [1, 3]
    assert directory.page_requests == []


async def test_cancellation_stops_sweep():
    ctx = CallContext.system("tests")

    class CancellingDirectory(FakeDirectory):
        async def get_user_ids_for_edition(self, edition_id, limit, offset):
            page = await super().get_user_ids_for_edition(edition_id, limit, offset)
            ctx.cancel()
            return page

    directory = CancellingDirectory([1, 2, 3, 4, 5])
    resolver = AudienceResolver(directory, page_size=2)

    with pytest.raises(asyncio.CancelledError):
        await resolver.resolve(change(), ctx)
    assert len(directory.page_requests) == 1


def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        AudienceResolver(FakeDirectory([]), page_size=0)


class TestSqlDirectory:
    async def test_edition_pages_are_distinct_and_ordered(self, session_factory):
        for user_id in (3, 1, 2):
            await add_schedule(session_factory, user_id, edition_id=7)
        await add_schedule(session_factory, 1, edition_id=7)
        await add_schedule(session_factory, 9, edition_id=8)
        await add_schedule(session_factory, 4, edition_id=7, is_deleted=True)

        directory = SqlPersonalScheduleDirectory(session_factory)

        assert await directory.get_user_ids_for_edition(7, limit=2, offset=0) == [1, 2]
        assert await directory.get_user_ids_for_edition(7, limit=2, offset=2) == [3]

    async def test_engagement_savers(self, session_factory):
        await add_schedule(session_factory, 1, edition_id=7, engagement_ids=[11, 12])
        await add_schedule(session_factory, 2, edition_id=7, engagement_ids=[11], muted=[11])
        await add_schedule(session_factory, 3, edition_id=7, engagement_ids=[11], is_deleted=True)
        await add_schedule(session_factory, 4, edition_id=7, engagement_ids=[12])

        directory = SqlPersonalScheduleDirectory(session_factory)

        assert await directory.get_user_ids_for_engagement(11) == [1]
        assert await directory.get_user_ids_for_engagement(12) == [1, 4]

    async def test_resolver_over_sql_directory(self, services, session_factory):
        for user_id in range(1, 6):
            await add_schedule(session_factory, user_id, edition_id=7)

        users = await services.audience.resolve(change(), CallContext.system("tests"))

        assert users == [1, 2, 3, 4, 5]
