"""
Rating statistics engine.

Every recompute is absolute: it pages through all published reviews of one
product, rebuilds the counts from scratch and stores the summary with a fresh
``last_calculated_at``. Recomputes are idempotent and may run concurrently for
the same product; the statistics store keeps whichever finished last.
"""

import time
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from review_service.core.errors import IterationCeilingError, QueueError, ReviewServiceError
from review_service.core.logger import logger
from review_service.models.review import PublicationStatus
from review_service.models.statistics import (
    RATING_KEYS,
    RatingStatistics,
    zeroed_summary,
)
from review_service.repositories.review_repository import ReviewRepository
from review_service.repositories.statistics_repository import StatisticsRepository
from review_service.services.job_queue import MongoJobQueue
from review_service.utils.pagination import RANGE_KEY
from review_service.utils.rounding import divide_half_up
from review_service.workers.jobs import RECOMPUTE_STATISTICS

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_ITERATIONS = 10_000
SLOW_RECOMPUTE_MS = 5000


def valid_rating(value: Any) -> Optional[int]:
    """The rating as an int in 1..5, or None for anything else"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != int(value) or not 1 <= value <= 5:
        return None
    return int(value)


def compute_summary(
    product_id: str,
    counts: Dict[int, int],
    calculated_at: Optional[datetime] = None,
) -> RatingStatistics:
    """Summary for a product from its per-rating counts, rounded half up to 2 places"""
    distribution = {key: int(counts.get(int(key), 0)) for key in RATING_KEYS}
    total = sum(distribution.values())
    weighted = sum(int(key) * count for key, count in distribution.items())

    return RatingStatistics(
        product_id=product_id,
        average_rating=divide_half_up(weighted, total),
        rating_count=total,
        rating_distribution=distribution,
        percentage_distribution={
            key: divide_half_up(100 * count, total) for key, count in distribution.items()
        },
        last_calculated_at=calculated_at or datetime.now(UTC),
    )


class StatisticsService:
    def __init__(
        self,
        review_repository: ReviewRepository,
        statistics_repository: StatisticsRepository,
        job_queue: MongoJobQueue,
        cache_invalidator=None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        recompute_on_miss: bool = False,
    ):
        self.review_repository = review_repository
        self.statistics_repository = statistics_repository
        self.job_queue = job_queue
        self.cache_invalidator = cache_invalidator
        self.page_size = page_size
        self.max_iterations = max_iterations
        self.recompute_on_miss = recompute_on_miss

    async def queue_recalculation(self, product_id: str, delay: int = 0) -> str:
        """
        Schedule a recompute for one product.

        Pending recomputes for the same product are consolidated into one job.

        Raises:
            QueueError: the job could not be stored
        """
        job_id = await self.job_queue.enqueue(
            RECOMPUTE_STATISTICS,
            {"product_id": product_id, "enqueued_at": datetime.now(UTC).isoformat()},
            unique_key=product_id,
            delay=delay,
        )
        logger.info(
            "Statistics recompute queued",
            metadata={"productId": product_id, "jobId": job_id},
        )
        return job_id

    async def count_ratings(self, product_id: str) -> Dict[int, int]:
        """
        Count published ratings of a product across every page of the product index.

        Raises:
            IterationCeilingError: pagination did not end within ``max_iterations`` pages
        """
        counts = {rating: 0 for rating in range(1, 6)}
        cursor = None
        iteration = 0

        while True:
            iteration += 1
            page = await self.review_repository.query_by_product(
                product_id,
                cursor=cursor,
                limit=self.page_size,
                filters={"publication_status": PublicationStatus.PUBLISHED.value},
            )
            if not page.items:
                break
            if iteration > self.max_iterations:
                logger.critical(
                    "Statistics pagination exceeded iteration ceiling",
                    metadata={"productId": product_id, "maxIterations": self.max_iterations},
                )
                raise IterationCeilingError(
                    f"Pagination for product {product_id} exceeded {self.max_iterations} pages",
                    details={"productId": product_id},
                )

            for item in page.items:
                rating = valid_rating(item.get("rating"))
                if rating is None:
                    logger.warning(
                        "Skipping review with invalid rating",
                        metadata={"productId": product_id, "reviewId": item.get("_id"), "rating": item.get("rating")},
                    )
                    continue
                counts[rating] += 1

            if len(page.items) < self.page_size:
                break
            cursor = {"product_id": product_id, RANGE_KEY: page.items[-1]["_id"]}

        return counts

    async def calculate(self, product_id: str) -> RatingStatistics:
        """
        Recompute and store the summary for one product, then invalidate its
        cached API responses.

        Storage errors propagate so the queue can retry; invalidation errors
        are logged only.
        """
        started = time.perf_counter()
        counts = await self.count_ratings(product_id)
        statistics = compute_summary(product_id, counts)
        stored = await self.statistics_repository.upsert(statistics)

        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Statistics recalculated",
            metadata={
                "productId": product_id,
                "count": statistics.rating_count,
                "average": statistics.average_rating,
                "stored": stored,
            },
        )
        logger.performance("statistics.recompute", duration_ms, SLOW_RECOMPUTE_MS,
                           metadata={"productId": product_id})

        if self.cache_invalidator is not None:
            try:
                await self.cache_invalidator.invalidate_statistics(product_id)
            except ReviewServiceError as e:
                logger.warning(
                    "Failed to invalidate cache after recompute",
                    error=e,
                    metadata={"productId": product_id},
                )

        return statistics

    async def get_summary(self, product_id: str) -> Dict[str, Any]:
        """Stored summary for a product, zeroed when it was never computed"""
        statistics = await self.statistics_repository.get(product_id)
        if statistics is not None:
            return statistics.to_summary()

        if self.recompute_on_miss:
            try:
                await self.queue_recalculation(product_id)
            except QueueError as e:
                logger.warning(
                    "Failed to schedule recompute for product without statistics",
                    error=e,
                    metadata={"productId": product_id},
                )
        return zeroed_summary()

    async def get_bulk_summaries(self, product_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Summaries keyed by product id, in request order, zeroed for unknown products"""
        stored = await self.statistics_repository.bulk_get(product_ids)
        summaries = {}
        for product_id in product_ids:
            statistics = stored.get(product_id)
            if statistics is None:
                summaries[product_id] = zeroed_summary(product_id)
            else:
                summaries[product_id] = {"product_id": product_id, **statistics.to_summary()}
        return summaries
