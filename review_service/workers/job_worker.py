"""
Review Service Worker - Job Consumer
Claims jobs from the MongoDB queues and runs their handlers
"""

import asyncio
from typing import Dict, Iterable, List

from review_service.core.errors import QueueError
from review_service.core.logger import logger
from review_service.models.queue import QueueJob
from review_service.services.job_queue import MongoJobQueue
from review_service.utils.correlation_id import create_correlation_id, set_correlation_id
from review_service.workers.jobs import NON_RETRYABLE_ERRORS, JobHandler

COMPLETED = "completed"
RELEASED = "released"
FAILED = "failed"

# A --once run gives up after this many queue errors in a row
MAX_QUEUE_ERRORS_ONCE = 3


class JobWorker:
    """Worker process for consuming and processing queued jobs"""

    def __init__(
        self,
        job_queue: MongoJobQueue,
        handlers: Dict[str, JobHandler],
        queues: Iterable[str],
        poll_interval: float = 1.0,
    ):
        self.job_queue = job_queue
        self.handlers = handlers
        self.queues: List[str] = list(queues)
        self.poll_interval = poll_interval
        self.is_running = False

    async def process(self, job: QueueJob) -> str:
        """
        Run one claimed job and settle it.

        Returns:
            "completed", "released" (retry scheduled) or "failed" (dead-lettered)
        """
        set_correlation_id(job.payload.get("correlation_id") or create_correlation_id())

        if job.attempts > job.max_attempts:
            # The previous claim timed out on its last attempt
            await self.job_queue.dead_letter(job, "Job has been attempted too many times or run too long")
            return FAILED

        handler = self.handlers.get(job.job)
        if handler is None:
            logger.warning(f"No handler registered for job: {job.job}", metadata={"jobId": job.id, "queue": job.queue})
            await self.job_queue.dead_letter(job, f"No handler registered for job {job.job}")
            return FAILED

        logger.info(f"Processing job: {job.job}", metadata={
            "jobId": job.id,
            "queue": job.queue,
            "attempt": job.attempts,
        })

        try:
            await asyncio.wait_for(handler(job.payload), timeout=self.job_queue.visibility_timeout(job.queue))
        except NON_RETRYABLE_ERRORS as e:
            await self.job_queue.dead_letter(job, f"{type(e).__name__}: {e}")
            return FAILED
        except Exception as e:
            if job.exhausted:
                await self.job_queue.dead_letter(job, f"{type(e).__name__}: {e}")
                return FAILED
            delay = job.backoff_for_attempt()
            logger.warning(
                f"Job failed, retrying in {delay}s: {job.job}",
                error=e,
                metadata={"jobId": job.id, "queue": job.queue, "attempt": job.attempts},
            )
            await self.job_queue.release(job, delay)
            return RELEASED

        await self.job_queue.complete(job)
        logger.info(f"Job completed: {job.job}", metadata={"jobId": job.id, "queue": job.queue})
        return COMPLETED

    async def run_once(self) -> int:
        """Claim and run at most one job per queue; returns how many ran"""
        processed = 0
        for queue in self.queues:
            job = await self.job_queue.reserve(queue)
            if job is None:
                continue
            await self.process(job)
            processed += 1
        return processed

    async def start(self, once: bool = False):
        """
        Poll the queues until stopped.

        With ``once``, drain whatever is available and return.
        """
        self.is_running = True
        logger.info("Review Worker started", metadata={"queues": self.queues})

        queue_errors = 0
        while self.is_running:
            try:
                processed = await self.run_once()
            except QueueError as e:
                # Unsettled jobs are redelivered once their reservation expires
                queue_errors += 1
                logger.error(
                    "Queue unavailable, polling again shortly",
                    error=e,
                    metadata={"queues": self.queues, "consecutiveErrors": queue_errors},
                )
                if once and queue_errors >= MAX_QUEUE_ERRORS_ONCE:
                    break
                await asyncio.sleep(self.poll_interval)
                continue
            queue_errors = 0
            if processed:
                continue
            if once:
                break
            await asyncio.sleep(self.poll_interval)

        self.is_running = False
        logger.info("Review Worker stopped")

    async def stop(self):
        """Finish the current job and exit the poll loop"""
        logger.info("Stopping Review Worker...")
        self.is_running = False
