import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from .config import MONGODB_DB, MONGODB_URL

logger = logging.getLogger(__name__)


async def connect(url: str = MONGODB_URL) -> AsyncIOMotorClient:
    client = AsyncIOMotorClient(url, serverSelectionTimeoutMS=5000)
    try:
        # The ping command is cheap and does not require auth.
        await client.admin.command("ping")
    except Exception:
        client.close()
        raise
    logger.info("Connected to MongoDB")
    return client


async def close(client: AsyncIOMotorClient):
    if client:
        client.close()
        logger.info("MongoDB connection closed")


def get_database(client: AsyncIOMotorClient, name: str = MONGODB_DB) -> AsyncIOMotorDatabase:
    return client[name]
