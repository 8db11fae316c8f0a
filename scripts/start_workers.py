#!/usr/bin/env python3
"""
Worker startup script for the EmuReady API.

Starts the Arq workers that deliver notifications and run trust ledger
maintenance (the monthly active bonus).
"""

import asyncio
import logging
import signal
import sys

from arq import create_pool
from arq.worker import Worker

from emuready_api.workers.base import BaseWorker
from emuready_api.workers.notification_worker import NotificationWorker
from emuready_api.workers.redis_connection import get_arq_redis_settings
from emuready_api.workers.trust_worker import TrustWorker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

WORKER_CLASSES: dict[str, type[BaseWorker]] = {
    "notification_worker": NotificationWorker,
    "trust_worker": TrustWorker,
}


class WorkerManager:
    """Manages multiple Arq workers."""

    def __init__(self):
        self.workers: list[Worker] = []
        self.tasks: list[asyncio.Task] = []
        self.redis_pool = None
        self.shutdown_event = asyncio.Event()

    async def start(self):
        """Start all workers."""
        try:
            self.redis_pool = await create_pool(get_arq_redis_settings())
            logger.info("Connected to Redis")

            for name, worker_class in WORKER_CLASSES.items():
                worker = Worker(
                    functions=list(worker_class.functions.values()),
                    cron_jobs=worker_class.cron_jobs,
                    redis_pool=self.redis_pool,
                    queue_name=worker_class.queue_name,
                    max_jobs=worker_class.max_jobs,
                    job_timeout=worker_class.job_timeout,
                    keep_result=3600,  # Keep results for 1 hour
                    on_startup=worker_class.startup,
                    on_shutdown=worker_class.shutdown,
                    handle_signals=False,
                )

                # Start worker in background
                task = asyncio.create_task(self._run_worker(worker, name))
                self.workers.append(worker)
                self.tasks.append(task)
                logger.info(f"Started {name} on queue {worker_class.queue_name}")

            logger.info(f"All {len(self.workers)} workers started successfully")

            # Wait for shutdown signal
            await self.shutdown_event.wait()

        except Exception:
            logger.exception("Failed to start workers")
            raise
        finally:
            await self.cleanup()

    async def _run_worker(self, worker: Worker, name: str):
        """Run a single worker with error handling."""
        try:
            await worker.async_run()
        except Exception:
            logger.exception(f"Worker {name} failed")
            # Signal shutdown if any worker fails
            self.shutdown_event.set()

    async def cleanup(self):
        """Clean up resources."""
        logger.info("Shutting down workers...")

        for worker in self.workers:
            try:
                await worker.close()
            except Exception:
                logger.exception("Error closing worker")

        if self.redis_pool:
            try:
                await self.redis_pool.aclose()
            except Exception:
                logger.exception("Error closing Redis pool")

        logger.info("Cleanup complete")

    def handle_shutdown(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, initiating shutdown...")
        self.shutdown_event.set()


async def main():
    """Main entry point."""
    manager = WorkerManager()

    # Set up signal handlers
    signal.signal(signal.SIGINT, manager.handle_shutdown)
    signal.signal(signal.SIGTERM, manager.handle_shutdown)

    try:
        await manager.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception:
        logger.exception("Worker manager failed")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
