"""
Review lifecycle orchestration.

Every write goes to the review store first. Statistics recomputes and CDN
invalidations follow it and are best-effort: their failures are logged and
never undo or fail the write.
"""

from typing import Any, Dict, List, Optional, Tuple

from review_service.core.errors import NotFoundError, ReviewServiceError
from review_service.core.logger import logger
from review_service.models.requests import CreateReviewRequest
from review_service.models.review import PublicationStatus, Review, new_review
from review_service.repositories.review_repository import ReviewIndex, ReviewPage, to_review
from review_service.utils.pagination import decode_cursor, encode_cursor

# Filter parameter -> stored attribute
FILTER_FIELDS = {
    "publication_status": "publication_status",
    "user_id": "user_id",
    "product_id": "product_id",
    "country": "country",
    "language": "original_language",
}

# First present filter picks the index
INDEX_PRECEDENCE = (
    ("publication_status", ReviewIndex.STATUS),
    ("user_id", ReviewIndex.USER),
    ("product_id", ReviewIndex.PRODUCT),
)

MAX_PER_PAGE = 100


class ReviewService:
    def __init__(
        self,
        review_repository,
        statistics_service,
        event_producer,
        cache_invalidator,
        media_service,
        translation_service,
    ):
        self.review_repository = review_repository
        self.statistics_service = statistics_service
        self.event_producer = event_producer
        self.cache_invalidator = cache_invalidator
        self.media_service = media_service
        self.translation_service = translation_service

    async def _invalidate(self, action: str, review: Review, coro):
        try:
            await coro
        except ReviewServiceError as e:
            logger.error(
                f"Cache invalidation failed after review {action}",
                error=e,
                metadata={"reviewId": review.review_id, "productId": review.product_id},
            )

    async def create_review(
        self,
        request: CreateReviewRequest,
        media_files: Optional[List[Tuple[str, bytes, Optional[str]]]] = None,
    ) -> Review:
        review = new_review(**request.model_dump())
        await self.review_repository.put(review)

        if media_files:
            media = await self.media_service.upload_many(media_files, review.review_id)
            if media:
                review.media = media
                await self.review_repository.put(review)

        logger.info(
            "Review created",
            metadata={"reviewId": review.review_id, "productId": review.product_id, "mediaCount": len(review.media)},
        )
        await self.event_producer.review_created(review)
        await self._invalidate("create", review, self.cache_invalidator.invalidate_review_created(review))
        return review

    async def get_review(self, review_id: str) -> Review:
        review = await self.review_repository.get(review_id)
        if review is None:
            raise NotFoundError("Review not found", details={"review_id": review_id})
        return review

    @staticmethod
    def _filters(params: Dict[str, Any]) -> Dict[str, Any]:
        filters = {
            field: params[name]
            for name, field in FILTER_FIELDS.items()
            if params.get(name) not in (None, "")
        }
        # Stored upper-cased on create
        if "country" in filters:
            filters["country"] = filters["country"].upper()
        return filters

    @staticmethod
    def _page_reviews(page: ReviewPage) -> List[Review]:
        reviews = [review for review in map(to_review, page.items) if review is not None]
        reviews.sort(key=lambda review: review.created_at, reverse=True)
        return reviews

    async def list_reviews(
        self,
        params: Dict[str, Any],
        per_page: int = MAX_PER_PAGE,
        next_token: Optional[str] = None,
    ) -> Tuple[List[Review], Optional[str]]:
        """
        One page of reviews, newest first.

        The first of publication_status, user_id, product_id present picks the
        index; the remaining filters narrow it. Without any of them the whole
        product index is swept.

        Returns:
            (reviews, next_token) where next_token is set only for a full page
        """
        per_page = min(per_page, MAX_PER_PAGE)
        filters = self._filters(params)

        index, hash_value = ReviewIndex.PRODUCT, None
        for name, candidate in INDEX_PRECEDENCE:
            if name in filters:
                index, hash_value = candidate, filters[name]
                break

        cursor = decode_cursor(next_token, index.hash_attribute, hash_value)
        if hash_value is None:
            page = await self.review_repository.scan_product_index(cursor=cursor, limit=per_page, filters=filters)
        elif index is ReviewIndex.STATUS:
            page = await self.review_repository.query_by_status(hash_value, cursor, per_page, filters)
        elif index is ReviewIndex.USER:
            page = await self.review_repository.query_by_user(hash_value, cursor, per_page, filters)
        else:
            page = await self.review_repository.query_by_product(hash_value, cursor, per_page, filters)

        return self._page_reviews(page), encode_cursor(page.next_cursor)

    async def has_pending_reviews(self) -> bool:
        return await self.review_repository.count_by_status(PublicationStatus.PENDING.value, limit=1) > 0

    async def status_counts(self) -> Dict[str, int]:
        counts = {}
        for status in PublicationStatus:
            counts[status.value] = await self.review_repository.count_by_status(status.value)
        counts["total"] = sum(counts.values())
        return counts

    async def get_product_reviews(
        self,
        product_id: str,
        params: Dict[str, Any],
        per_page: int = MAX_PER_PAGE,
        next_token: Optional[str] = None,
    ) -> Tuple[List[Review], Optional[str], Dict[str, Any]]:
        """
        Reviews of one product with its stored rating summary.

        Only published reviews are returned unless publication_status is given;
        ``all`` lifts the status filter.
        """
        params = dict(params)
        status = params.get("publication_status")
        if not status:
            params["publication_status"] = PublicationStatus.PUBLISHED.value
        elif status == "all":
            params["publication_status"] = None
        params["product_id"] = None
        filters = self._filters(params)

        cursor = decode_cursor(next_token, ReviewIndex.PRODUCT.hash_attribute, product_id)
        page = await self.review_repository.query_by_product(
            product_id, cursor, min(per_page, MAX_PER_PAGE), filters
        )
        summary = await self.statistics_service.get_summary(product_id)
        return self._page_reviews(page), encode_cursor(page.next_cursor), summary

    async def delete_review(self, review_id: str) -> Review:
        review = await self.get_review(review_id)
        await self.review_repository.delete(review_id)

        logger.info(
            "Review deleted",
            metadata={"reviewId": review_id, "productId": review.product_id, "status": review.publication_status},
        )
        await self.event_producer.review_deleted(review)
        await self._invalidate("delete", review, self.cache_invalidator.invalidate_review_deleted(review))
        return review

    async def update_publication_status(self, review_id: str, status: str) -> Review:
        review = await self.get_review(review_id)
        previous_status = review.publication_status
        review.publication_status = status
        await self.review_repository.put(review)

        logger.info(
            "Publication status updated",
            metadata={"reviewId": review_id, "from": previous_status, "to": review.publication_status},
        )
        await self.event_producer.publication_status_changed(review, previous_status)
        await self._invalidate("publication update", review, self.cache_invalidator.invalidate_review_updated(review))
        return review

    async def translate_review(self, review_id: str, language: str) -> Review:
        """
        The review with ``review_<language>`` filled in.

        A stored translation is returned as is; otherwise the provider is called
        once and the result saved.
        """
        review = await self.get_review(review_id)
        if review.text_for(language):
            return review

        review, translated = await self.translation_service.translate_review(review, language)
        if translated:
            await self._invalidate("translation", review, self.cache_invalidator.invalidate_review_updated(review))
        return review
