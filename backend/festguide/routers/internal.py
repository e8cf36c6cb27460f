"""Backend-to-backend endpoints (schedule component -> notifications)."""
import hmac
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request

from ..context import CallContext
from ..schemas.schedule_change import ScheduleChangeNotification
from ..services.container import NotificationServices
from ..services.schedule_events import notify_schedule_change
from .deps import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/internal", tags=["internal"])


def verify_internal_secret(request: Request, x_internal_secret: str = Header(None)) -> None:
    """Check the shared secret configured for internal callers."""
    expected = request.app.state.internal_secret
    if not expected:
        raise HTTPException(status_code=403, detail="Internal API not configured")
    if not x_internal_secret or not hmac.compare_digest(x_internal_secret, expected):
        raise HTTPException(status_code=403, detail="Invalid credentials")


@router.post("/schedule-changes", status_code=202, dependencies=[Depends(verify_internal_secret)])
async def receive_schedule_change(
    change: ScheduleChangeNotification,
    background_tasks: BackgroundTasks,
    services: NotificationServices = Depends(get_services),
):
    """Accept a schedule change and notify attendees after responding.

    The publisher gets its answer immediately; delivery problems are logged
    here and never reported back as a failed publish.
    """
    ctx = CallContext.system("schedule-publication")
    background_tasks.add_task(notify_schedule_change, services.delivery, change, ctx)
    logger.info(f"Accepted {change.change_type} for edition {change.edition_id}")
    return {"status": "accepted"}
