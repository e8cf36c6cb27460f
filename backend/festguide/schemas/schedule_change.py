"""Schedule change event raised by the schedule component."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ScheduleChangeNotification(BaseModel):
    """A published or materially changed schedule.

    With engagement_id set only attendees who saved that engagement are
    notified; without it the whole edition audience is.
    """
    edition_id: int
    change_type: str = Field(..., min_length=1, max_length=50)  # schedule_published, time_changed, cancelled...
    engagement_id: Optional[int] = None
    time_slot_id: Optional[int] = None
    artist_name: Optional[str] = None
    stage_name: Optional[str] = None
    old_start_time: Optional[datetime] = None
    new_start_time: Optional[datetime] = None
    message: str = Field(..., min_length=1)
