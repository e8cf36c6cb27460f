"""Domain exceptions raised by the notification services."""


class NotificationError(Exception):
    """Base class for notification subsystem errors."""


class ForbiddenError(NotificationError):
    """Resource missing or owned by another user.

    Both cases share one error so callers cannot probe for other users'
    devices or notifications.
    """


class NotFoundError(NotificationError):
    """An upstream lookup found nothing."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")
