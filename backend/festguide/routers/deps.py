"""Shared FastAPI dependencies."""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from ..context import CallContext
from ..services.container import NotificationServices


def get_services(request: Request) -> NotificationServices:
    """Services built during application startup."""
    return request.app.state.services


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> int:
    """Authenticated user id, as forwarded by the API gateway."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")
    if user_id <= 0:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")
    return user_id


async def get_user_context(user_id: int = Depends(get_current_user_id)) -> CallContext:
    return CallContext.for_user(user_id)
