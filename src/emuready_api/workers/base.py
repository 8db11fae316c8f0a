"""Base worker classes for the EmuReady background jobs."""

import logging

from collections.abc import Callable
from typing import Any

from arq.connections import RedisSettings
from arq.cron import CronJob

from emuready_api.database.connection import close_database
from emuready_api.database.connection import init_database
from emuready_api.workers.redis_connection import close_redis_connections
from emuready_api.workers.redis_connection import get_arq_redis_settings

logger = logging.getLogger(__name__)


class BaseWorker:
    """Base class for all EmuReady workers."""

    functions: dict[str, Callable] = {}
    cron_jobs: list[CronJob] = []
    queue_name: str = "arq:queue"
    max_jobs: int = 10
    job_timeout: int = 300

    def __init__(self):
        self.redis_settings: RedisSettings = get_arq_redis_settings()

    @staticmethod
    async def startup(ctx: dict[str, Any]) -> None:
        """Worker startup hook."""
        logger.info(f"Starting worker for queue {ctx.get('queue_name', 'default')}")
        await init_database()

    @staticmethod
    async def shutdown(ctx: dict[str, Any]) -> None:
        """Worker shutdown hook."""
        logger.info("Shutting down worker")
        await close_redis_connections()
        await close_database()


def create_worker_class(
    functions: list[Callable],
    queue_name: str,
    cron_jobs: list[CronJob] | None = None,
    max_jobs: int = 10,
    job_timeout: int = 300,
) -> type[BaseWorker]:
    """Create a worker class with the specified functions."""

    class DynamicWorker(BaseWorker):
        pass

    # Set class attributes after class definition
    DynamicWorker.functions = {f.__name__: f for f in functions}
    DynamicWorker.cron_jobs = list(cron_jobs or [])
    DynamicWorker.queue_name = queue_name
    DynamicWorker.max_jobs = max_jobs
    DynamicWorker.job_timeout = job_timeout

    return DynamicWorker
