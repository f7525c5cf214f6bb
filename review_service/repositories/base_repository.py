"""
Base repository pattern for MongoDB data access.

Provides generic operations on collections keyed by a string ``_id``.
Driver failures are logged and re-raised as ``StorageError``; a missing
document is reported as None or False, never as an exception.
"""

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from review_service.core.errors import StorageError
from review_service.core.logger import logger


class BaseRepository:
    """
    Base repository providing generic operations for MongoDB collections.

    Usage:
        class ReviewRepository(BaseRepository):
            def __init__(self, collection: AsyncIOMotorCollection):
                super().__init__(collection)
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection
        self.collection_name = collection.name

    def _storage_error(self, action: str, error: Exception, **metadata) -> StorageError:
        logger.error(
            f"Error {action} in {self.collection_name}",
            error=error,
            metadata={"collection": self.collection_name, **metadata}
        )
        return StorageError(
            f"Failed {action} in {self.collection_name}",
            details={"collection": self.collection_name, "reason": str(error)},
        )

    async def replace(self, document: Dict[str, Any]) -> str:
        """
        Insert or fully overwrite the document with the same ``_id``.

        Returns:
            str: ID of the stored document
        """
        try:
            await self.collection.replace_one({"_id": document["_id"]}, document, upsert=True)
        except PyMongoError as e:
            raise self._storage_error("writing document", e, documentId=document.get("_id"))

        logger.debug(
            f"Document stored in {self.collection_name}",
            metadata={"collection": self.collection_name, "documentId": document["_id"]}
        )
        return document["_id"]

    async def find_by_id(self, document_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.collection.find_one({"_id": document_id})
        except PyMongoError as e:
            raise self._storage_error("finding document", e, documentId=document_id)

    async def find_many(
        self,
        query: Dict[str, Any],
        limit: Optional[int] = None,
        sort: Optional[List[tuple]] = None,
        projection: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Find documents matching query.

        Args:
            query: MongoDB query filter
            limit: Maximum number of documents to return
            sort: Sort specification
            projection: Fields to return

        Returns:
            List[Dict]: Matching documents
        """
        try:
            cursor = self.collection.find(query, projection)
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise self._storage_error("finding documents", e, query=query)

        logger.debug(
            f"Found {len(documents)} documents in {self.collection_name}",
            metadata={"collection": self.collection_name, "count": len(documents)}
        )
        return documents

    async def delete(self, document_id: str) -> bool:
        try:
            result = await self.collection.delete_one({"_id": document_id})
        except PyMongoError as e:
            raise self._storage_error("deleting document", e, documentId=document_id)

        success = result.deleted_count > 0
        if success:
            logger.info(
                f"Document deleted from {self.collection_name}",
                metadata={"collection": self.collection_name, "documentId": document_id}
            )
        return success

    async def count(self, query: Dict[str, Any], limit: Optional[int] = None) -> int:
        options = {"limit": limit} if limit else {}
        try:
            return await self.collection.count_documents(query, **options)
        except PyMongoError as e:
            raise self._storage_error("counting documents", e, query=query)
