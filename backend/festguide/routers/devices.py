"""Device registration API endpoints for push notifications."""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Response

from ..context import CallContext
from ..schemas.device import DeviceRegisterRequest, DeviceResponse
from ..services.container import NotificationServices
from .deps import get_current_user_id, get_services, get_user_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/devices", tags=["devices"])


@router.post("", response_model=DeviceResponse, status_code=201)
async def register_device(
    request: DeviceRegisterRequest,
    user_id: int = Depends(get_current_user_id),
    ctx: CallContext = Depends(get_user_context),
    services: NotificationServices = Depends(get_services),
):
    """Register a device for push notifications.

    If the token is already known it is moved to the caller and reactivated.
    The app should call this on every launch to keep the token current.
    """
    device = await services.devices.register_device(
        ctx,
        user_id,
        token=request.token,
        platform=request.platform,
        device_name=request.device_name,
    )
    return DeviceResponse.model_validate(device)


@router.get("", response_model=List[DeviceResponse])
async def get_devices(
    user_id: int = Depends(get_current_user_id),
    services: NotificationServices = Depends(get_services),
):
    """List the caller's devices, including deactivated ones."""
    devices = await services.devices.get_devices(user_id)
    return [DeviceResponse.model_validate(d) for d in devices]


@router.delete("/by-token", status_code=204)
async def unregister_device_by_token(
    token: str = Query(..., min_length=1, max_length=512),
    services: NotificationServices = Depends(get_services),
):
    """Unregister a device by its token.

    Called by push-provider feedback and logout flows that have no user
    session, so the change is attributed to a system principal.
    """
    ctx = CallContext.system("device-token-callback")
    await services.devices.unregister_by_token(ctx, token)
    return Response(status_code=204)


@router.delete("/{device_id}", status_code=204)
async def unregister_device(
    device_id: int,
    user_id: int = Depends(get_current_user_id),
    ctx: CallContext = Depends(get_user_context),
    services: NotificationServices = Depends(get_services),
):
    """Unregister one of the caller's devices.

    This doesn't delete the record but marks it as inactive.
    """
    await services.devices.unregister_device(ctx, user_id, device_id)
    return Response(status_code=204)
