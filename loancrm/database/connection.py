import logging
import re
from typing import Optional

import motor.motor_asyncio
from beanie import init_beanie

from loancrm.core.config import Settings
from loancrm.database.models import DOCUMENT_MODELS

logger = logging.getLogger(__name__)


# For security, never log full connection URIs which may contain credentials.
def mask_mongo_uri(uri: Optional[str]) -> str:
    if not uri:
        return "<missing>"
    m = re.match(r'(?P<prefix>mongodb(?:\+srv)?://)(?:(?P<creds>[^@]+)@)?(?P<rest>.+)', uri)
    if not m:
        return "mongodb://<redacted>"
    # show only host part before first slash
    host_part = m.group('rest').split('/')[0]
    return f"{m.group('prefix')}***@{host_part}"


async def init_db(settings: Settings) -> motor.motor_asyncio.AsyncIOMotorClient:
    """Connect to MongoDB, verify the connection and register the Beanie documents.

    Returns the Motor client so the caller can close it on shutdown.
    """
    if not settings.MONGODB_URI:
        logger.error("MONGODB_URI is not set")
        raise RuntimeError("Configuration error: MONGODB_URI is not set")
    if not settings.MONGODB_DB_NAME:
        logger.error("MONGODB_DB_NAME is not set")
        raise RuntimeError("Configuration error: MONGODB_DB_NAME is not set")

    logger.info("Attempting to connect to MongoDB at: %s", mask_mongo_uri(settings.MONGODB_URI))
    logger.info("Database name: %s", settings.MONGODB_DB_NAME)

    # Shared connection pool; a slow or unreachable server surfaces as a store error
    client = motor.motor_asyncio.AsyncIOMotorClient(
        settings.MONGODB_URI,
        maxPoolSize=10,
        serverSelectionTimeoutMS=5000,
        socketTimeoutMS=45000,
        retryWrites=True,
    )

    try:
        await client.admin.command('ping')
        logger.info("Successfully connected to MongoDB!")

        database = client[settings.MONGODB_DB_NAME]
        await init_beanie(database, document_models=DOCUMENT_MODELS)
        logger.info("Beanie initialized successfully!")
    except Exception as e:
        logger.error("Database initialization failed: %s", e)
        client.close()
        raise

    return client


def close_db(client: Optional[motor.motor_asyncio.AsyncIOMotorClient]) -> None:
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
