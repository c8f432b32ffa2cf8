"""MongoDB connection management."""

import logging
from typing import Optional
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection

from billscan.config.settings import MongoSettings

logger = logging.getLogger(__name__)

# Global MongoDB client
_client: Optional[AsyncMongoClient] = None
_settings: Optional[MongoSettings] = None


async def connect_to_mongo(settings: MongoSettings) -> None:
    """Open the shared MongoDB client."""
    global _client, _settings

    if _client is not None:
        return

    logger.info(f"Connecting to MongoDB database '{settings.database}'")
    _client = AsyncMongoClient(
        settings.url,
        tz_aware=True,
        serverSelectionTimeoutMS=int(settings.timeout_seconds * 1000),
    )
    _settings = settings


async def close_mongo_connection() -> None:
    """Close the shared MongoDB client."""
    global _client, _settings

    if _client is None:
        return

    logger.info("Closing MongoDB connection")
    await _client.close()
    _client = None
    _settings = None


def get_bills_collection() -> AsyncCollection:
    """Return the bills collection of the connected database."""
    if _client is None or _settings is None:
        raise RuntimeError("MongoDB is not connected; call connect_to_mongo() first")
    return _client[_settings.database][_settings.bills_collection]
