from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from app.app_config import get_app_environ_config
from app.schemas.init import init_beanie_odm
from app.services.app_db import get_live_queue_mongo_client
from app.shared.api.utils import init_logger
from app.shared.storage.mongo import close_mongo_clients

cfg = get_app_environ_config()

queue_url = cfg.REDIS_URL

SVC_KEY = "myc-live-queue"

QUEUE_KEY = f"{SVC_KEY}:streaq"
QUEUE_KEY_SWEEP = f"{QUEUE_KEY}:sweep"

# Seven-field cron with a leading seconds field
SWEEP_CRON = f"*/{cfg.SWEEP_INTERVAL_SECONDS} * * * * * *"


@asynccontextmanager
async def worker_storage() -> AsyncIterator[None]:
    """Bind the Beanie documents for the worker process when Mongo is the backend."""
    if cfg.STORE_BACKEND != "mongo":
        yield
        return

    await init_beanie_odm(get_live_queue_mongo_client(), cfg.MONGO_DB_NAME)
    logger.info(f"Worker Beanie ODM initialized on database '{cfg.MONGO_DB_NAME}'")
    try:
        yield
    finally:
        await close_mongo_clients()


def init_worker_logger(name: str) -> None:
    init_logger(f"{SVC_KEY}:{name}")
    logger.info(f"Starting {name} worker")
