"""Audience resolver - who should hear about a schedule change."""
import logging
from typing import List

from ..context import CallContext
from ..schemas.schedule_change import ScheduleChangeNotification
from .personal_schedules import PersonalScheduleDirectory

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500


class AudienceResolver:
    """Computes the user ids to notify for a ScheduleChangeNotification.

    Engagement-level changes go only to users who saved that engagement.
    Edition-wide changes sweep every page of personal schedules for the
    edition until a short page comes back, so no audience is ever truncated.
    """

    def __init__(self, directory: PersonalScheduleDirectory, page_size: int = DEFAULT_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._directory = directory
        self._page_size = page_size

    async def resolve(self, change: ScheduleChangeNotification, ctx: CallContext) -> List[int]:
        """Return the sorted, de-duplicated user ids for a change."""
        if change.engagement_id is not None:
            user_ids = set(await self._directory.get_user_ids_for_engagement(change.engagement_id))
            logger.debug(f"Engagement {change.engagement_id}: {len(user_ids)} interested users")
            return sorted(user_ids)

        return sorted(await self._sweep_edition(change.edition_id, ctx))

    async def _sweep_edition(self, edition_id: int, ctx: CallContext) -> set:
        user_ids = set()
        offset = 0
        pages = 0

        while True:
            ctx.raise_if_cancelled()
            page = await self._directory.get_user_ids_for_edition(edition_id, self._page_size, offset)
            pages += 1
            user_ids.update(page)

            if len(page) < self._page_size:
                break
            offset += self._page_size

        logger.debug(f"Edition {edition_id}: {len(user_ids)} users across {pages} pages")
        return user_ids
