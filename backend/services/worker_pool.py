import asyncio
from typing import Dict
import logging

from exceptions import JobAlreadyInFlightError

logger = logging.getLogger(__name__)


class TranscodeWorkerPool:
    """Bounded executor for transcode jobs

    - At most `max_concurrency` jobs run the pipeline at once; the rest wait
      on the semaphore in submission order.
    - A key that is queued or running cannot be submitted again until its
      job has finished.
    """

    def __init__(self, pipeline, max_concurrency: int = 2):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.pipeline = pipeline
        self.max_concurrency = max_concurrency
        self.semaphore = asyncio.Semaphore(max_concurrency)
        self.tasks: Dict[str, asyncio.Task] = {}
        self.active = 0

    def in_flight(self, key: str) -> bool:
        return key in self.tasks

    def submit(self, key: str) -> asyncio.Task:
        """Schedule a transcode job for `key`

        Raises:
            JobAlreadyInFlightError: If a job for `key` is queued or running
        """
        if key in self.tasks:
            raise JobAlreadyInFlightError(key)

        task = asyncio.create_task(self._run(key), name=f"transcode:{key}")
        self.tasks[key] = task
        task.add_done_callback(lambda _t, k=key: self.tasks.pop(k, None))
        logger.info(f"Queued transcode for {key} ({len(self.tasks)} in flight)")
        return task

    async def _run(self, key: str):
        async with self.semaphore:
            self.active += 1
            try:
                return await self.pipeline.run(key)
            except asyncio.CancelledError:
                logger.info(f"Transcode for {key} cancelled")
                raise
            except Exception as e:
                logger.error(f"Transcode worker error for {key}: {e}", exc_info=True)
                return None
            finally:
                self.active -= 1

    def status(self) -> dict:
        return {
            "max_concurrency": self.max_concurrency,
            "active": self.active,
            "queued": len(self.tasks) - self.active,
            "keys": sorted(self.tasks),
        }

    async def stop(self):
        """Cancel every queued or running job and wait for them to unwind"""
        tasks = list(self.tasks.values())
        if not tasks:
            return

        logger.info(f"Stopping transcode pool, cancelling {len(tasks)} job(s): {self.status()}")
        for task in tasks:
            if not task.done():
                task.cancel()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                logger.error(f"Transcode task failed during shutdown: {result}")

        logger.info("Transcode pool stopped")
