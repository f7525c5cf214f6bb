"""
Review store.

Reviews live in one collection keyed by ``review_id`` with three secondary
lookup paths (product, user, publication status). Every query is keyset
paginated: results are ordered by ``_id`` within the index hash key and a
cursor resumes strictly after the last item returned.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel, Field

from review_service.core.logger import logger
from review_service.models.review import Review
from review_service.repositories.base_repository import BaseRepository
from review_service.utils.pagination import RANGE_KEY

SECONDARY_FILTER_FIELDS = ("publication_status", "country", "original_language", "user_id", "product_id")


class ReviewIndex(str, Enum):
    PRODUCT = "product_id-index"
    USER = "user_id-index"
    STATUS = "publication_status-index"

    @property
    def hash_attribute(self) -> str:
        return {
            ReviewIndex.PRODUCT: "product_id",
            ReviewIndex.USER: "user_id",
            ReviewIndex.STATUS: "publication_status",
        }[self]


class ReviewQuery(BaseModel):
    """
    Query descriptor dispatched by ``ReviewRepository.query``.

    ``hash_key_value`` None is only valid on the product index and means a full
    sweep ordered by (product_id, review_id).
    """

    index: ReviewIndex
    hash_key_value: Optional[str] = None
    filters: Dict[str, Any] = Field(default_factory=dict)
    limit: int = Field(default=100, gt=0)
    after_key: Optional[Dict[str, str]] = None
    projection: Optional[List[str]] = None


class ReviewPage(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[Dict[str, str]] = None


class ReviewRepository(BaseRepository):
    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    @staticmethod
    def build_filter(query: ReviewQuery) -> Dict[str, Any]:
        hash_attribute = query.index.hash_attribute
        conditions: Dict[str, Any] = {
            field: value
            for field, value in query.filters.items()
            if field in SECONDARY_FILTER_FIELDS and value is not None and field != hash_attribute
        }

        if query.hash_key_value is not None:
            conditions[hash_attribute] = query.hash_key_value
            if query.after_key:
                conditions["_id"] = {"$gt": query.after_key[RANGE_KEY]}
            return conditions

        if query.index is not ReviewIndex.PRODUCT:
            raise ValueError(f"{query.index.value} queries need a hash key value")

        if query.after_key:
            last_product = query.after_key[hash_attribute]
            conditions["$or"] = [
                {hash_attribute: {"$gt": last_product}},
                {hash_attribute: last_product, "_id": {"$gt": query.after_key[RANGE_KEY]}},
            ]
        return conditions

    @staticmethod
    def build_sort(query: ReviewQuery) -> List[tuple]:
        if query.hash_key_value is None:
            return [(query.index.hash_attribute, 1), ("_id", 1)]
        return [("_id", 1)]

    async def query(self, query: ReviewQuery) -> ReviewPage:
        """Run one page of an index query."""
        projection = None
        if query.projection is not None:
            projection = {field: 1 for field in query.projection}
            projection[query.index.hash_attribute] = 1

        items = await self.find_many(
            self.build_filter(query),
            limit=query.limit,
            sort=self.build_sort(query),
            projection=projection,
        )

        next_cursor = None
        if len(items) >= query.limit:
            last = items[-1]
            next_cursor = {
                query.index.hash_attribute: last[query.index.hash_attribute],
                RANGE_KEY: last["_id"],
            }
        return ReviewPage(items=items, next_cursor=next_cursor)

    async def put(self, review: Review) -> Review:
        await self.replace(review.to_document())
        return review

    async def get(self, review_id: str) -> Optional[Review]:
        document = await self.find_by_id(review_id)
        if document is None:
            return None
        return Review.from_document(document)

    async def query_by_product(
        self,
        product_id: str,
        cursor: Optional[Dict[str, str]] = None,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
    ) -> ReviewPage:
        return await self.query(ReviewQuery(
            index=ReviewIndex.PRODUCT,
            hash_key_value=product_id,
            filters=filters or {},
            limit=limit,
            after_key=cursor,
        ))

    async def query_by_status(
        self,
        status: str,
        cursor: Optional[Dict[str, str]] = None,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
    ) -> ReviewPage:
        return await self.query(ReviewQuery(
            index=ReviewIndex.STATUS,
            hash_key_value=status,
            filters=filters or {},
            limit=limit,
            after_key=cursor,
        ))

    async def query_by_user(
        self,
        user_id: str,
        cursor: Optional[Dict[str, str]] = None,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
    ) -> ReviewPage:
        return await self.query(ReviewQuery(
            index=ReviewIndex.USER,
            hash_key_value=user_id,
            filters=filters or {},
            limit=limit,
            after_key=cursor,
        ))

    async def scan_product_index(
        self,
        cursor: Optional[Dict[str, str]] = None,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        keys_only: bool = False,
    ) -> ReviewPage:
        """Sweep the whole product index in (product_id, review_id) order."""
        return await self.query(ReviewQuery(
            index=ReviewIndex.PRODUCT,
            filters=filters or {},
            limit=limit,
            after_key=cursor,
            projection=["product_id"] if keys_only else None,
        ))

    async def count_by_status(self, status: str, limit: Optional[int] = None) -> int:
        """Number of reviews in a status; pass ``limit=1`` for an existence check"""
        return await self.count({"publication_status": status}, limit=limit)

    async def find_needing_translation(
        self,
        limit: int = 100,
        status: Optional[str] = None,
        after_review_id: Optional[str] = None,
    ) -> List[Review]:
        """Reviews where either language field is still empty, oldest id first"""
        query: Dict[str, Any] = {
            "$or": [
                {"review_en": {"$in": [None, ""]}},
                {"review_ar": {"$in": [None, ""]}},
            ]
        }
        if status:
            query["publication_status"] = status
        if after_review_id:
            query["_id"] = {"$gt": after_review_id}

        documents = await self.find_many(query, limit=limit, sort=[("_id", 1)])
        reviews = []
        for document in documents:
            review = to_review(document)
            if review is not None:
                reviews.append(review)
        return reviews


def to_review(document: Dict[str, Any]) -> Optional[Review]:
    """Load a stored document, skipping (and logging) records that no longer validate"""
    try:
        return Review.from_document(document)
    except ValueError as e:
        logger.warning(
            "Skipping invalid review record",
            error=e,
            metadata={"reviewId": document.get("_id")},
        )
        return None
