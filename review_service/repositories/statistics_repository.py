from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from review_service.core.logger import logger
from review_service.models.statistics import RatingStatistics
from review_service.repositories.base_repository import BaseRepository


class StatisticsRepository(BaseRepository):
    """Per-product rating summaries, keyed by product_id."""

    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    async def get(self, product_id: str) -> Optional[RatingStatistics]:
        document = await self.find_by_id(product_id)
        if document is None:
            return None
        return RatingStatistics.from_document(document)

    async def upsert(self, statistics: RatingStatistics) -> bool:
        """
        Store a summary unless a newer one is already there (last writer wins
        on ``last_calculated_at``).

        Returns:
            bool: False when the stored record was calculated later
        """
        document = statistics.to_document()
        condition = {
            "_id": statistics.product_id,
            "$or": [
                {"last_calculated_at": {"$lte": statistics.last_calculated_at}},
                {"last_calculated_at": {"$exists": False}},
            ],
        }
        try:
            # A newer stored record fails the filter and the upsert then
            # collides on _id
            await self.collection.replace_one(condition, document, upsert=True)
        except DuplicateKeyError:
            logger.info(
                "Newer statistics already stored, discarding write",
                metadata={
                    "productId": statistics.product_id,
                    "lastCalculatedAt": statistics.last_calculated_at.isoformat(),
                },
            )
            return False
        except PyMongoError as e:
            raise self._storage_error("writing statistics", e, productId=statistics.product_id)

        return True

    async def bulk_get(self, product_ids: List[str]) -> Dict[str, RatingStatistics]:
        if not product_ids:
            return {}
        documents = await self.find_many({"_id": {"$in": list(dict.fromkeys(product_ids))}})
        return {
            document["_id"]: RatingStatistics.from_document(document)
            for document in documents
        }
