"""
Gallery cache repository: stores fetched listing entries in MongoDB.

Implements the ``cache_items`` collaborator of the fetch controller.
Uses Motor async driver for non-blocking I/O.
"""

from datetime import datetime, timezone

from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from gallery_client.core.exceptions import CacheError
from gallery_client.core.logging import get_logger
from gallery_client.domain.models import Gallery
from gallery_client.infrastructure.db.mongo import GALLERIES_COLLECTION, get_database

logger = get_logger(__name__)


class GalleryCacheRepository:
    """Async cache of galleries keyed by ``gid``."""

    def _get_collection(self):
        return get_database()[GALLERIES_COLLECTION]

    async def cache_items(self, items: list[Gallery]) -> None:
        """
        Upsert galleries by ``gid``.

        Args:
            items: Galleries from one fetched page.

        Raises:
            CacheError: If the bulk write fails.
        """
        if not items:
            return

        now = datetime.now(timezone.utc)
        operations = [
            UpdateOne(
                {"gid": gallery.gid},
                {
                    "$set": {**gallery.model_dump(), "updated_at": now},
                    "$setOnInsert": {"created_at": now},
                },
                upsert=True,
            )
            for gallery in items
        ]

        try:
            result = await self._get_collection().bulk_write(operations, ordered=False)
            logger.info(
                "Cached %d galleries (%d new, %d updated)",
                len(items),
                result.upserted_count,
                result.modified_count,
            )
        except PyMongoError as exc:
            logger.error("Caching %d galleries failed: %s", len(items), exc)
            raise CacheError("cache_items", str(exc)) from exc

    async def find_by_gid(self, gid: str) -> Gallery | None:
        try:
            document = await self._get_collection().find_one({"gid": gid})
        except PyMongoError as exc:
            logger.error("Database lookup failed for gid=%s: %s", gid, exc)
            raise CacheError("find_by_gid", str(exc)) from exc

        if document is None:
            return None
        return Gallery.model_validate(document)
