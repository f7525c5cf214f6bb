from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from review_service.core.config import Config, config as default_config
from review_service.core.errors import ConfigurationError, ErrorResponse
from review_service.core.logger import logger
from review_service.services.dapr_secret_manager import get_database_config

REVIEWS_COLLECTION = "ratings_and_reviews"
STATISTICS_COLLECTION = "ratings_and_review_statistics"
JOBS_COLLECTION = "queue_jobs"
FAILED_JOBS_COLLECTION = "failed_jobs"

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


def build_mongodb_uri(db_config: dict) -> str:
    if db_config.get('uri'):
        return db_config['uri']
    if db_config['username'] and db_config['password']:
        return (
            f"mongodb://{db_config['username']}:{db_config['password']}"
            f"@{db_config['host']}:{db_config['port']}/{db_config['database']}"
            f"?authSource={db_config['auth_source']}"
        )
    return f"mongodb://{db_config['host']}:{db_config['port']}/{db_config['database']}"


async def connect_to_mongo(settings: Config = None) -> AsyncIOMotorDatabase:
    """Open the shared client and check the database is reachable"""
    global _client, _db
    if _db is not None:
        return _db

    settings = settings or default_config
    db_config = get_database_config(settings)
    db_name = db_config['database']

    if not db_name:
        logger.error(
            "MONGODB_DATABASE must be set in the environment or .env file",
            metadata={"event": "mongodb_env_error"}
        )
        raise ConfigurationError("MONGODB_DATABASE must be set in the environment or .env file")

    logger.debug(
        "Attempting to connect to MongoDB",
        metadata={
            "event": "mongodb_connect_attempt",
            "uri": f"{db_config['host']}:{db_config['port']}",
            "db_name": db_name,
        }
    )

    client = AsyncIOMotorClient(build_mongodb_uri(db_config), tz_aware=True)
    db = client[db_name]

    try:
        collections = await db.list_collection_names()
    except PyMongoError as e:
        client.close()
        logger.error(
            f"MongoDB database '{db_name}' is not accessible",
            error=e,
            metadata={"event": "mongodb_db_missing"}
        )
        raise ErrorResponse(
            f"MongoDB database '{db_name}' is not accessible: {e}",
            status_code=503
        )

    logger.info(
        f"Successfully connected to MongoDB database '{db_name}'",
        metadata={"event": "mongodb_connected", "database": db_name, "collections_count": len(collections)}
    )
    if not collections:
        logger.warning(
            f"MongoDB database '{db_name}' has no collections. Collections will be created on first insert.",
            metadata={"event": "mongodb_db_empty"}
        )

    _client, _db = client, db
    return db


async def close_mongo_connection():
    global _client, _db
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed", metadata={"event": "mongodb_closed"})
    _client, _db = None, None
