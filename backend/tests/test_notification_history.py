from datetime import datetime, timedelta

import pytest

from conftest import count_logs, user_ctx
from festguide.errors import ForbiddenError
from festguide.services.scheduler import SchedulerService
from festguide.utils.db_utils import utcnow


async def record(services, user_id, title="Title", sent_at=None, data=None):
    return await services.history.record(
        user_ctx(user_id),
        user_id=user_id,
        device_token_id=None,
        notification_type="announcement",
        title=title,
        body="Body",
        is_delivered=True,
        sent_at=sent_at or utcnow(),
        data=data,
    )


async def test_newest_first_with_paging(services):
    base = datetime(2026, 7, 1, 12, 0)
    for i in range(3):
        await record(services, 1, title=f"n{i}", sent_at=base + timedelta(minutes=i))
    await record(services, 2, title="other")

    first_page = await services.history.get_notifications(1, limit=2, offset=0)
    second_page = await services.history.get_notifications(1, limit=2, offset=2)

    assert [n.title for n in first_page] == ["n2", "n1"]
    assert [n.title for n in second_page] == ["n0"]


async def test_mark_as_read_and_unread_count(services):
    first = await record(services, 1)
    await record(services, 1)
    assert await services.history.get_unread_count(1) == 2

    await services.history.mark_as_read(user_ctx(1), 1, first.id)
    await services.history.mark_as_read(user_ctx(1), 1, first.id)

    assert await services.history.get_unread_count(1) == 1
    stored = await services.history.get_notification(first.id)
    assert stored.read_at is not None
    assert stored.modified_by == "user:1"


async def test_mark_as_read_checks_ownership(services):
    log = await record(services, 1)

    with pytest.raises(ForbiddenError, match="Notification not found or does not belong to user."):
        await services.history.mark_as_read(user_ctx(2), 2, log.id)
    with pytest.raises(ForbiddenError):
        await services.history.mark_as_read(user_ctx(2), 2, 12345)

    assert await services.history.get_unread_count(1) == 1


async def test_mark_all_as_read_only_touches_own_unread(services):
    read_one = await record(services, 1)
    await services.history.mark_as_read(user_ctx(1), 1, read_one.id)
    await record(services, 1)
    await record(services, 1)
    await record(services, 2)

    assert await services.history.mark_all_as_read(user_ctx(1), 1) == 2
    assert await services.history.get_unread_count(1) == 0
    assert await services.history.get_unread_count(2) == 1


async def test_cleanup_old_logs(services, session_factory):
    await record(services, 1, sent_at=utcnow() - timedelta(days=120))
    await record(services, 1, sent_at=utcnow() - timedelta(days=1))

    assert await services.history.cleanup_old_logs(90) == 1
    assert await count_logs(session_factory) == 1


async def test_scheduler_cleanup_job(services, session_factory):
    await record(services, 1, sent_at=utcnow() - timedelta(days=40))
    scheduler = SchedulerService(services.history, retention_days=30)

    assert await scheduler.cleanup_old_logs() == 1
    assert await count_logs(session_factory) == 0


async def test_scheduler_start_stop(services):
    scheduler = SchedulerService(services.history, retention_days=30, interval_hours=12)

    scheduler.start()
    try:
        assert scheduler.running
        assert scheduler.scheduler.get_job("cleanup_notification_logs") is not None
    finally:
        scheduler.stop()
    assert not scheduler.running
