"""Database client helpers for application services."""

from pymongo import AsyncMongoClient

from app.shared.storage.mongo import get_mongo_client

# MongoDB label for the live queue; MONGO_URL_LIVE_QUEUE overrides MONGO_URL
LIVE_QUEUE_MONGO_LABEL = "live_queue"


def get_live_queue_mongo_client() -> AsyncMongoClient:
    """Get MongoDB client for the live queue database.

    Falls back to the default client when no dedicated connection string is set.
    """
    try:
        return get_mongo_client(LIVE_QUEUE_MONGO_LABEL)
    except ValueError:
        return get_mongo_client()
