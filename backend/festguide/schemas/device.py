"""Device registration schemas for API."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class DeviceRegisterRequest(BaseModel):
    """Request to register a device for push notifications."""
    token: str = Field(..., min_length=1, max_length=512)
    platform: str = Field(..., pattern="(?i)^(ios|android|web)$")  # Stored lower-case
    device_name: Optional[str] = Field(None, max_length=100)


class DeviceResponse(BaseModel):
    """Registered device as returned to its owner. The token is never echoed."""
    id: int
    platform: str
    device_name: Optional[str] = None
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
