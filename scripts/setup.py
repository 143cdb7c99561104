"""Initial setup script for Expat Vault infrastructure."""

from __future__ import annotations

import asyncio
import logging

from expatvault.core.config import settings
from expatvault.core.database import database_manager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def setup_mongodb() -> None:
    await database_manager.ensure_indexes()
    logger.info(
        "Collections ready: %s.%s, %s.%s",
        settings.MONGODB_DATABASE,
        settings.DOCUMENTS_COLLECTION,
        settings.MONGODB_DATABASE,
        settings.REMINDERS_COLLECTION,
    )


async def main() -> None:
    await database_manager.initialize()
    try:
        await setup_mongodb()
    finally:
        await database_manager.close()


if __name__ == "__main__":
    asyncio.run(main())
