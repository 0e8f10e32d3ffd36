"""
MongoDB lifecycle for the gallery cache.

One motor client per process, opened by the lifespan before any
controller caches a page and closed at shutdown.
"""

import asyncio

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from gallery_client.core.config import Settings, settings
from gallery_client.core.logging import get_logger

logger = get_logger(__name__)

GALLERIES_COLLECTION = "galleries"

_client: AsyncIOMotorClient | None = None
_database: AsyncIOMotorDatabase | None = None


async def _ping(config: Settings) -> AsyncIOMotorClient:
    client = AsyncIOMotorClient(
        config.mongo_uri,
        serverSelectionTimeoutMS=5000,
        maxPoolSize=10,
    )
    try:
        await client.admin.command("ping")
    except (ConnectionFailure, ServerSelectionTimeoutError):
        client.close()
        raise
    return client


async def connect_to_mongo(
    config: Settings = settings,
    max_retries: int = 5,
    base_delay: float = 1.0,
) -> None:
    """
    Open the cache database, retrying with exponential backoff.

    Args:
        config: Supplies the MongoDB URI and database name.
        max_retries: Attempts before giving up.
        base_delay: Seconds before the second attempt, doubled after each failure.

    Raises:
        ConnectionFailure: If every attempt fails.
    """
    global _client, _database

    delay = base_delay
    for attempt in range(1, max_retries + 1):
        logger.info("Connecting to gallery cache (attempt %d/%d)", attempt, max_retries)
        try:
            _client = await _ping(config)
        except (ConnectionFailure, ServerSelectionTimeoutError) as exc:
            if attempt == max_retries:
                logger.error("Gallery cache unreachable after %d attempts", max_retries)
                raise ConnectionFailure(
                    f"Could not connect to MongoDB after {max_retries} attempts"
                ) from exc
            logger.warning("Cache connection failed: %s. Retrying in %.1fs", exc, delay)
            await asyncio.sleep(delay)
            delay *= 2
            continue

        _database = _client[config.mongo_db_name]
        logger.info("Gallery cache connected (db=%s)", config.mongo_db_name)
        return


async def close_mongo() -> None:
    global _client, _database

    if _client is None:
        return
    _client.close()
    _client = None
    _database = None
    logger.info("Gallery cache connection closed")


def get_database() -> AsyncIOMotorDatabase:
    """
    Return the cache database.

    Raises:
        RuntimeError: If the lifespan has not connected it yet.
    """
    if _database is None:
        raise RuntimeError("Gallery cache is not connected; call connect_to_mongo() first")
    return _database


async def ensure_indexes() -> None:
    """
    - Unique ``gid``: re-caching a gallery upserts in place.
    - ``updated_at``: find recently refreshed entries.
    """
    collection = get_database()[GALLERIES_COLLECTION]
    await collection.create_index("gid", unique=True, name="idx_gid_unique")
    await collection.create_index("updated_at", name="idx_updated_at")
    logger.info("Indexes ensured on '%s'", GALLERIES_COLLECTION)
