"""Database connectivity layer for the Expat Vault service."""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as redis
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING

from expatvault.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Lazily establishes connections to the row store and Redis."""

    def __init__(self) -> None:
        self.mongodb: Optional[AsyncIOMotorClient] = None
        self.redis: Optional[redis.Redis] = None

    async def initialize(self) -> None:
        """Connect to all backing services."""

        if self.mongodb is not None:
            return

        logger.info("Initializing Expat Vault database manager")

        self.mongodb = AsyncIOMotorClient(str(settings.MONGODB_URL), tz_aware=True)

        if settings.REDIS_URL:
            self.redis = redis.from_url(str(settings.REDIS_URL), decode_responses=True)

        logger.info("Database manager initialized")

    def collection(self, name: str) -> Optional[AsyncIOMotorCollection]:
        if self.mongodb is None:
            return None
        return self.mongodb[settings.MONGODB_DATABASE][name]

    async def ensure_indexes(self) -> None:
        """Create the indexes every query path relies on.

        The unique `(document_id, reminder_type)` key is what keeps the
        reminder ladder of a document from being materialized twice.
        """

        documents = self.collection(settings.DOCUMENTS_COLLECTION)
        reminders = self.collection(settings.REMINDERS_COLLECTION)
        if documents is None or reminders is None:
            logger.error("MongoDB client unavailable. Did initialization fail?")
            return

        await documents.create_index([("id", ASCENDING)], unique=True, name="document_id")
        await documents.create_index([("user_id", ASCENDING), ("deleted_at", ASCENDING)], name="document_owner")
        await reminders.create_index([("id", ASCENDING)], unique=True, name="reminder_id")
        await reminders.create_index(
            [("document_id", ASCENDING), ("reminder_type", ASCENDING)],
            unique=True,
            name="reminder_document_type",
        )
        await reminders.create_index(
            [("user_id", ASCENDING), ("deadline_date", ASCENDING)],
            name="reminder_owner_deadline",
        )
        logger.info("MongoDB indexes ensured")

    async def close(self) -> None:
        """Tear down connections gracefully."""

        logger.info("Closing database connections")

        if self.redis is not None:
            await self.redis.close()
            self.redis = None

        if self.mongodb is not None:
            self.mongodb.close()
            self.mongodb = None


# Singleton instance shared by routes and middleware
database_manager = DatabaseManager()
