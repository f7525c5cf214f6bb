"""
Database index management for MongoDB.

Creates the lookup paths the review store, statistics store and job queue rely
on. Run at application startup and by ``review-service migrate``.
"""

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from review_service.core.logger import logger
from review_service.db.mongodb import (
    FAILED_JOBS_COLLECTION,
    JOBS_COLLECTION,
    REVIEWS_COLLECTION,
)


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create all required MongoDB indexes.

    Args:
        db: MongoDB database instance
    """
    reviews = db[REVIEWS_COLLECTION]

    try:
        # Secondary lookups: hash on the attribute, range on review id
        await reviews.create_index(
            [("product_id", ASCENDING), ("_id", ASCENDING)],
            name="product_id-index"
        )
        await reviews.create_index(
            [("user_id", ASCENDING), ("_id", ASCENDING)],
            name="user_id-index"
        )
        await reviews.create_index(
            [("publication_status", ASCENDING), ("_id", ASCENDING)],
            name="publication_status-index"
        )
        # Aggregator scan: published reviews of one product
        await reviews.create_index(
            [("product_id", ASCENDING), ("publication_status", ASCENDING), ("_id", ASCENDING)],
            name="product_status-index"
        )
        logger.info(f"Created indexes on '{REVIEWS_COLLECTION}'")

        jobs = db[JOBS_COLLECTION]
        await jobs.create_index(
            [("queue", ASCENDING), ("reserved_until", ASCENDING), ("available_at", ASCENDING)],
            name="idx_queue_available"
        )
        await jobs.create_index(
            [("queue", ASCENDING), ("unique_key", ASCENDING)],
            name="idx_queue_unique_key",
            sparse=True
        )
        await db[FAILED_JOBS_COLLECTION].create_index(
            [("queue", ASCENDING), ("failed_at", ASCENDING)],
            name="idx_failed_queue"
        )
        logger.info("Created job queue indexes")

        logger.info("All MongoDB indexes created successfully")

    except Exception as e:
        logger.error(f"Error creating indexes: {e}", error=e)
        raise
