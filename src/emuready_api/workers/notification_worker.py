"""Notification delivery worker for EmuReady."""

import logging

from typing import Any

from pydantic import ValidationError

from emuready_api.config.redis import get_redis_settings
from emuready_api.database.models.notification import NotificationCreate
from emuready_api.database.repositories.notification import (
    get_notification_repository,
)
from emuready_api.workers.base import create_worker_class

logger = logging.getLogger(__name__)


async def deliver_notification(ctx: dict[str, Any], payload: dict[str, Any]) -> bool:
    """Persist a queued notification into the user's inbox.

    Malformed payloads are dropped; retrying them cannot succeed.
    """
    try:
        notification = NotificationCreate.model_validate(payload)
    except ValidationError:
        logger.exception("Dropping malformed notification payload")
        return False

    repository = get_notification_repository()
    stored = await repository.create_notification(notification)
    logger.info(f"Delivered {stored.type} notification {stored.pk} to {stored.user_pk}")
    return True


NotificationWorker = create_worker_class(
    functions=[deliver_notification],
    queue_name=get_redis_settings().notification_queue,
    max_jobs=10,
    job_timeout=60,
)
