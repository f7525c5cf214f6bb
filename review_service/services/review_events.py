from typing import Optional

from review_service.core.errors import QueueError
from review_service.core.logger import logger
from review_service.models.review import Review


class ReviewEventProducer:
    """
    Schedules statistics recomputes for review state changes.

    Only published reviews count towards a product's statistics, so:
    - creating a review (always pending) schedules nothing
    - deleting a review schedules a recompute if it was published
    - changing the publication status always schedules one

    Enqueue failures are logged and swallowed; the write that triggered them has
    already succeeded and the backfill command repairs any drift.
    """

    def __init__(self, statistics_service):
        self.statistics_service = statistics_service

    async def _emit(self, review: Review, reason: str) -> bool:
        try:
            await self.statistics_service.queue_recalculation(review.product_id)
        except QueueError as e:
            logger.error(
                "Failed to queue statistics recompute",
                error=e,
                metadata={"reviewId": review.review_id, "productId": review.product_id, "reason": reason},
            )
            return False
        return True

    async def review_created(self, review: Review) -> bool:
        return False

    async def review_deleted(self, review: Review) -> bool:
        if not review.is_published:
            return False
        return await self._emit(review, "deleted")

    async def publication_status_changed(self, review: Review, previous_status: Optional[str] = None) -> bool:
        logger.debug(
            "Publication status changed",
            metadata={
                "reviewId": review.review_id,
                "from": previous_status,
                "to": review.publication_status,
            },
        )
        return await self._emit(review, "publication_status")
