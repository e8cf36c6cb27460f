"""Notification history schemas for API."""
import json
from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel

from ..models.notification_log import NotificationLog


class NotificationResponse(BaseModel):
    """One entry of an attendee's notification inbox."""
    id: int
    notification_type: str
    title: str
    body: str
    data: Optional[Dict[str, str]] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    sent_at: datetime
    is_read: bool

    @classmethod
    def from_log(cls, log: NotificationLog) -> "NotificationResponse":
        return cls(
            id=log.id,
            notification_type=log.notification_type,
            title=log.title,
            body=log.body,
            data=json.loads(log.data_payload) if log.data_payload else None,
            related_entity_type=log.related_entity_type,
            related_entity_id=log.related_entity_id,
            sent_at=log.sent_at,
            is_read=log.read_at is not None,
        )


class UnreadCountResponse(BaseModel):
    """Number of unread notifications."""
    count: int
