"""Entry point used by schedule publication to notify attendees."""
import logging
from typing import Optional

from ..context import CallContext
from ..schemas.schedule_change import ScheduleChangeNotification
from .delivery import DeliveryEngine, DeliveryReport

logger = logging.getLogger(__name__)


async def notify_schedule_change(
    engine: DeliveryEngine,
    change: ScheduleChangeNotification,
    ctx: CallContext,
) -> Optional[DeliveryReport]:
    """Send a schedule change without letting notification problems escape.

    Publishing a schedule must succeed even when notifying fails, so any
    error is logged and None is returned. Cancellation still propagates.
    """
    try:
        return await engine.send_schedule_change(ctx, change)
    except Exception:
        logger.exception(
            f"Failed to send {change.change_type} notification for edition {change.edition_id} "
            f"(acting as {ctx.principal.audit_tag})"
        )
        return None
