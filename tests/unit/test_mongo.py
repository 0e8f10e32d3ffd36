"""
Unit tests for the gallery cache connection lifecycle.

Tests cover:
  - Retry with backoff until the ping succeeds
  - Giving up after the last attempt
  - get_database before connecting
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from gallery_client.infrastructure.db import mongo


def motor_client(ping_error=None):
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ping_error)
    return client


@pytest.fixture(autouse=True)
def disconnected():
    yield
    mongo._client = None
    mongo._database = None


@pytest.mark.asyncio
class TestConnectToMongo:
    async def test_retries_until_ping_succeeds(self, test_settings):
        failing = motor_client(ServerSelectionTimeoutError("no primary"))
        healthy = motor_client()

        with patch.object(mongo, "AsyncIOMotorClient", side_effect=[failing, healthy]), \
                patch.object(mongo.asyncio, "sleep", new_callable=AsyncMock) as sleep:
            await mongo.connect_to_mongo(test_settings, max_retries=3, base_delay=0.5)

        sleep.assert_awaited_once_with(0.5)
        failing.close.assert_called_once()
        healthy.__getitem__.assert_called_once_with(test_settings.mongo_db_name)
        assert mongo.get_database() is healthy.__getitem__.return_value

    async def test_gives_up_after_last_attempt(self, test_settings):
        clients = [motor_client(ServerSelectionTimeoutError("down")) for _ in range(2)]

        with patch.object(mongo, "AsyncIOMotorClient", side_effect=clients), \
                patch.object(mongo.asyncio, "sleep", new_callable=AsyncMock):
            with pytest.raises(ConnectionFailure):
                await mongo.connect_to_mongo(test_settings, max_retries=2)

        with pytest.raises(RuntimeError):
            mongo.get_database()

    async def test_close_resets_handle(self, test_settings):
        client = motor_client()

        with patch.object(mongo, "AsyncIOMotorClient", return_value=client):
            await mongo.connect_to_mongo(test_settings)
        await mongo.close_mongo()

        client.close.assert_called_once()
        with pytest.raises(RuntimeError):
            mongo.get_database()
