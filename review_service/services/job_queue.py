"""
Durable job queue on MongoDB.

Jobs are documents in ``queue_jobs``. A worker claims one atomically with
``find_one_and_update``, which hides it for the queue's visibility timeout and
counts the attempt. A claim that is never completed or released becomes
visible again when the timeout passes, so delivery is at-least-once. Jobs that
run out of attempts move to ``failed_jobs`` where they can be listed, retried
or forgotten.
"""

from datetime import datetime, timedelta, UTC
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from review_service.core.errors import QueueError
from review_service.core.logger import logger
from review_service.models.queue import FailedJob, QueueJob
from review_service.utils.correlation_id import get_correlation_id

DEFAULT_VISIBILITY_TIMEOUT = 60


class JobSpec(BaseModel):
    """Static definition of a job type: where it runs and how it retries."""

    name: str
    queue: str
    max_attempts: int = 1
    backoff: List[int] = Field(default_factory=list)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _object_id(job_id: str) -> ObjectId:
    try:
        return ObjectId(job_id)
    except (InvalidId, TypeError):
        raise QueueError(f"Invalid job id '{job_id}'", details={"jobId": job_id})


class MongoJobQueue:
    def __init__(
        self,
        jobs: AsyncIOMotorCollection,
        failed_jobs: AsyncIOMotorCollection,
        visibility_timeouts: Optional[Dict[str, int]] = None,
    ):
        self.jobs = jobs
        self.failed_jobs = failed_jobs
        self.visibility_timeouts = visibility_timeouts or {}

    def visibility_timeout(self, queue: str) -> int:
        return self.visibility_timeouts.get(queue, DEFAULT_VISIBILITY_TIMEOUT)

    async def enqueue(
        self,
        spec: JobSpec,
        payload: Dict[str, Any],
        unique_key: Optional[str] = None,
        delay: int = 0,
    ) -> str:
        """
        Add a job to its queue.

        With a ``unique_key``, a matching job that nobody has picked up yet
        absorbs this one and its id is returned instead.

        Raises:
            QueueError: the job could not be stored
        """
        now = _utc_now()
        payload = dict(payload)
        payload.setdefault("correlation_id", get_correlation_id())
        fields = {
            "payload": payload,
            "max_attempts": spec.max_attempts,
            "backoff": list(spec.backoff),
            "available_at": now + timedelta(seconds=delay),
            "created_at": now,
        }

        try:
            if unique_key is None:
                result = await self.jobs.insert_one({
                    "queue": spec.queue,
                    "job": spec.name,
                    "attempts": 0,
                    "reserved_until": None,
                    "unique_key": None,
                    **fields,
                })
                job_id = str(result.inserted_id)
            else:
                document = await self.jobs.find_one_and_update(
                    {
                        "queue": spec.queue,
                        "job": spec.name,
                        "unique_key": unique_key,
                        "reserved_until": None,
                        "attempts": 0,
                    },
                    {"$setOnInsert": fields},
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )
                job_id = str(document["_id"])
        except PyMongoError as e:
            logger.error(
                f"Failed to enqueue job {spec.name}",
                error=e,
                metadata={"queue": spec.queue, "job": spec.name, "uniqueKey": unique_key},
            )
            raise QueueError(
                f"Failed to enqueue job {spec.name}",
                details={"queue": spec.queue, "reason": str(e)},
            )

        logger.debug(
            f"Job queued: {spec.name}",
            metadata={"queue": spec.queue, "jobId": job_id, "uniqueKey": unique_key, "delay": delay},
        )
        return job_id

    async def reserve(self, queue: str) -> Optional[QueueJob]:
        """Claim the oldest visible job on ``queue``, or None when there is none"""
        now = _utc_now()
        try:
            document = await self.jobs.find_one_and_update(
                {
                    "queue": queue,
                    "available_at": {"$lte": now},
                    "$or": [
                        {"reserved_until": None},
                        {"reserved_until": {"$lte": now}},
                    ],
                },
                {
                    "$set": {"reserved_until": now + timedelta(seconds=self.visibility_timeout(queue))},
                    "$inc": {"attempts": 1},
                },
                sort=[("available_at", 1), ("_id", 1)],
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise QueueError(f"Failed to reserve job on {queue}", details={"reason": str(e)})

        if document is None:
            return None
        return QueueJob.from_document(document)

    async def complete(self, job: QueueJob) -> None:
        try:
            await self.jobs.delete_one({"_id": _object_id(job.id)})
        except PyMongoError as e:
            raise QueueError(f"Failed to complete job {job.id}", details={"reason": str(e)})

    async def release(self, job: QueueJob, delay: int = 0) -> None:
        """Make a reserved job visible again after ``delay`` seconds"""
        try:
            await self.jobs.update_one(
                {"_id": _object_id(job.id)},
                {"$set": {
                    "reserved_until": None,
                    "available_at": _utc_now() + timedelta(seconds=delay),
                }},
            )
        except PyMongoError as e:
            raise QueueError(f"Failed to release job {job.id}", details={"reason": str(e)})

    async def dead_letter(self, job: QueueJob, error: str) -> str:
        """Move a job to ``failed_jobs``"""
        document = {
            "queue": job.queue,
            "job": job.job,
            "payload": job.payload,
            "attempts": job.attempts,
            "max_attempts": job.max_attempts,
            "backoff": job.backoff,
            "unique_key": job.unique_key,
            "exception": error,
            "failed_at": _utc_now(),
        }
        try:
            result = await self.failed_jobs.insert_one(document)
            await self.jobs.delete_one({"_id": _object_id(job.id)})
        except PyMongoError as e:
            raise QueueError(f"Failed to dead-letter job {job.id}", details={"reason": str(e)})

        logger.error(
            f"Job failed permanently: {job.job}",
            metadata={
                "queue": job.queue,
                "jobId": job.id,
                "attempts": job.attempts,
                "payload": job.payload,
                "exception": error,
            },
        )
        return str(result.inserted_id)

    async def list_failed(self, queue: Optional[str] = None, limit: int = 100) -> List[FailedJob]:
        query = {"queue": queue} if queue else {}
        try:
            documents = await self.failed_jobs.find(query).sort([("failed_at", 1)]).to_list(length=limit)
        except PyMongoError as e:
            raise QueueError("Failed to list failed jobs", details={"reason": str(e)})
        return [FailedJob.from_document(document) for document in documents]

    async def redrive(self, failed_id: Optional[str] = None, queue: Optional[str] = None) -> int:
        """
        Put failed jobs back on their queue with a fresh attempt budget.

        Args:
            failed_id: a single failed job, or None for every failed job
            queue: restrict a bulk redrive to one queue

        Returns:
            int: number of jobs requeued
        """
        query: Dict[str, Any] = {}
        if failed_id:
            query["_id"] = _object_id(failed_id)
        elif queue:
            query["queue"] = queue

        requeued = 0
        try:
            async for document in self.failed_jobs.find(query):
                now = _utc_now()
                await self.jobs.insert_one({
                    "queue": document["queue"],
                    "job": document["job"],
                    "payload": document.get("payload", {}),
                    "attempts": 0,
                    "max_attempts": document.get("max_attempts", 1),
                    "backoff": document.get("backoff", []),
                    "unique_key": document.get("unique_key"),
                    "available_at": now,
                    "reserved_until": None,
                    "created_at": now,
                })
                await self.failed_jobs.delete_one({"_id": document["_id"]})
                requeued += 1
        except PyMongoError as e:
            raise QueueError("Failed to redrive failed jobs", details={"reason": str(e)})

        logger.info("Failed jobs requeued", metadata={"count": requeued, "queue": queue, "failedId": failed_id})
        return requeued

    async def forget(self, failed_id: str) -> bool:
        try:
            result = await self.failed_jobs.delete_one({"_id": _object_id(failed_id)})
        except PyMongoError as e:
            raise QueueError(f"Failed to forget job {failed_id}", details={"reason": str(e)})
        return result.deleted_count > 0

    async def size(self, queue: str) -> int:
        try:
            return await self.jobs.count_documents({"queue": queue})
        except PyMongoError as e:
            raise QueueError(f"Failed to count jobs on {queue}", details={"reason": str(e)})
