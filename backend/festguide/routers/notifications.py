"""Notification history and preference API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, Query, Response

from ..context import CallContext
from ..schemas.notification import NotificationResponse, UnreadCountResponse
from ..schemas.preferences import PreferencesResponse, PreferencesUpdate
from ..services.container import NotificationServices
from .deps import get_current_user_id, get_services, get_user_context

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    services: NotificationServices = Depends(get_services),
):
    """Get the caller's notifications, newest first."""
    logs = await services.history.get_notifications(user_id, limit=limit, offset=offset)
    return [NotificationResponse.from_log(log) for log in logs]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user_id: int = Depends(get_current_user_id),
    services: NotificationServices = Depends(get_services),
):
    """Get the number of unread notifications."""
    count = await services.history.get_unread_count(user_id)
    return UnreadCountResponse(count=count)


@router.post("/read-all", status_code=204)
async def mark_all_as_read(
    user_id: int = Depends(get_current_user_id),
    ctx: CallContext = Depends(get_user_context),
    services: NotificationServices = Depends(get_services),
):
    """Mark all of the caller's notifications as read."""
    await services.history.mark_all_as_read(ctx, user_id)
    return Response(status_code=204)


@router.post("/{notification_id}/read", status_code=204)
async def mark_as_read(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    ctx: CallContext = Depends(get_user_context),
    services: NotificationServices = Depends(get_services),
):
    """Mark one notification as read."""
    await services.history.mark_as_read(ctx, user_id, notification_id)
    return Response(status_code=204)


@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(
    user_id: int = Depends(get_current_user_id),
    services: NotificationServices = Depends(get_services),
):
    """Get notification preferences (defaults if never saved)."""
    prefs = await services.preferences.get_preferences(user_id)
    return PreferencesResponse.model_validate(prefs)


@router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    update: PreferencesUpdate,
    user_id: int = Depends(get_current_user_id),
    ctx: CallContext = Depends(get_user_context),
    services: NotificationServices = Depends(get_services),
):
    """Update notification preferences. Omitted fields keep their value."""
    prefs = await services.preferences.update_preferences(ctx, user_id, update.changes())
    return PreferencesResponse.model_validate(prefs)
