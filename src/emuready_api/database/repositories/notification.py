"""Notification repository for the EmuReady API."""

from asyncpg import Record

from emuready_api.database.models.notification import Notification
from emuready_api.database.models.notification import NotificationCreate
from emuready_api.database.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for delivered notifications."""

    def __init__(self):
        super().__init__("notifications")

    def _record_to_model(self, record: Record) -> Notification:
        """Convert database record to Notification model."""
        return Notification.model_validate(dict(record))

    async def create_notification(self, notification: NotificationCreate) -> Notification:
        """Persist a notification for the user's inbox."""
        return await self.create_from_dict(notification.model_dump())


def get_notification_repository() -> NotificationRepository:
    """Get notification repository instance."""
    return NotificationRepository()
