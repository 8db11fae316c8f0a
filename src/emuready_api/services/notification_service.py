"""Post-commit notification dispatch for the EmuReady API."""

import logging

from typing import Any
from uuid import UUID

from emuready_api.config.redis import get_redis_settings
from emuready_api.database.models.notification import NotificationCreate
from emuready_api.database.models.notification import NotificationType
from emuready_api.workers.redis_connection import get_redis_pool

logger = logging.getLogger(__name__)


class NotificationService:
    """Enqueues notification jobs for the notification worker.

    Dispatch happens after the moderation transaction has committed and is
    fire-and-forget: a failure is logged and never reaches the caller.
    """

    def __init__(self, queue_name: str | None = None):
        self.queue_name = queue_name or get_redis_settings().notification_queue

    async def dispatch(
        self,
        user_pk: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Queue a notification. Returns False if it could not be queued."""
        notification = NotificationCreate(
            user_pk=user_pk,
            type=notification_type,
            title=title,
            message=message,
            metadata=metadata or {},
        )

        try:
            pool = await get_redis_pool()
            await pool.enqueue_job(
                "deliver_notification",
                notification.model_dump(mode="json"),
                _queue_name=self.queue_name,
            )
        except Exception:
            logger.exception(
                f"Failed to queue {notification.type} notification for user {user_pk}"
            )
            return False

        logger.debug(f"Queued {notification.type} notification for user {user_pk}")
        return True


def get_notification_service() -> NotificationService:
    """Get notification service instance."""
    return NotificationService()
