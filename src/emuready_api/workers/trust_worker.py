"""Trust ledger maintenance worker for EmuReady."""

import logging

from typing import Any

from arq import cron

from emuready_api.config.redis import get_redis_settings
from emuready_api.services.trust_service import get_trust_service
from emuready_api.workers.base import create_worker_class

logger = logging.getLogger(__name__)


async def apply_monthly_active_bonus(ctx: dict[str, Any]) -> int:
    """Credit the monthly active bonus to every eligible user.

    Safe to run more than once a month: each user is credited at most once
    per calendar month.
    """
    logger.info("Starting monthly active bonus run")
    credited = await get_trust_service().apply_monthly_active_bonus()
    logger.info(f"Monthly active bonus run finished, {credited} users credited")
    return credited


TrustWorker = create_worker_class(
    functions=[apply_monthly_active_bonus],
    queue_name=get_redis_settings().trust_queue,
    cron_jobs=[
        # First day of each month; reruns the same day are no-ops.
        cron(apply_monthly_active_bonus, day=1, hour=0, minute=5, run_at_startup=False),
    ],
    max_jobs=1,
    job_timeout=1800,
)
