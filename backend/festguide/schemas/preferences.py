"""Notification preference schemas for API."""
from datetime import time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, Field, field_validator, model_validator


class PreferencesResponse(BaseModel):
    """Effective notification preferences (stored or defaults)."""
    push_enabled: bool = True
    email_enabled: bool = True
    schedule_changes_enabled: bool = True
    reminders_enabled: bool = True
    reminder_minutes_before: int = 30
    announcements_enabled: bool = True
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone_id: str = "UTC"

    class Config:
        from_attributes = True


class PreferencesUpdate(BaseModel):
    """Partial update; only fields present in the request are changed.

    Quiet hours are set or cleared as a pair: send both times, or send both
    as null to remove the window.
    """
    push_enabled: Optional[bool] = None
    email_enabled: Optional[bool] = None
    schedule_changes_enabled: Optional[bool] = None
    reminders_enabled: Optional[bool] = None
    reminder_minutes_before: Optional[int] = Field(None, ge=5, le=120)
    announcements_enabled: Optional[bool] = None
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone_id: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("timezone_id")
    @classmethod
    def timezone_must_exist(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone '{value}'")
        return value

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def quiet_hours_are_wall_clock(cls, value: Optional[time]) -> Optional[time]:
        # Quiet hours are local times in timezone_id; an offset would be dropped on save
        if value is not None and value.tzinfo is not None:
            raise ValueError("Quiet hours must be local times without a UTC offset.")
        return value

    @model_validator(mode="after")
    def quiet_hours_pair(self) -> "PreferencesUpdate":
        has_start = "quiet_hours_start" in self.model_fields_set
        has_end = "quiet_hours_end" in self.model_fields_set
        if has_start != has_end or (self.quiet_hours_start is None) != (self.quiet_hours_end is None):
            raise ValueError("Both quiet hours start and end must be provided, or neither.")
        if self.quiet_hours_start is not None and self.quiet_hours_start == self.quiet_hours_end:
            raise ValueError("Quiet hours start and end must differ.")
        return self

    def changes(self) -> dict:
        """Fields explicitly sent by the client. Nulls only clear quiet hours."""
        changes = self.model_dump(exclude_unset=True)
        return {
            key: value for key, value in changes.items()
            if value is not None or key in ("quiet_hours_start", "quiet_hours_end")
        }
