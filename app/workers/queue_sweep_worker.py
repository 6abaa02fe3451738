"""Streaq worker that skips live-queue turns nobody joined in time."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from streaq import Worker

from app.api.v1.dependency import get_live_queue_service
from app.workers.base import (
    QUEUE_KEY_SWEEP,
    SWEEP_CRON,
    init_worker_logger,
    queue_url,
    worker_storage,
)


@asynccontextmanager
async def queue_sweep_lifespan() -> AsyncIterator[None]:
    """Lifespan context manager for the queue sweep worker."""
    init_worker_logger("queue-sweep")

    async with worker_storage():
        logger.info("Queue sweep worker initialized")
        try:
            yield
        finally:
            logger.info("Queue sweep worker stopped")


worker: Worker[None] = Worker(
    redis_url=queue_url,
    lifespan=queue_sweep_lifespan,  # type: ignore[arg-type]
    queue_name=QUEUE_KEY_SWEEP,
)


@worker.cron(SWEEP_CRON)
async def sweep_expired_turns() -> dict[str, Any]:
    """Skip your_turn entries whose join window has passed.

    Returns:
        dict with the sweep status and the number of entries skipped
    """
    result = await get_live_queue_service().auto_skip_expired()
    if not result.success or result.results is None:
        logger.error(f"Expired turn sweep failed: {result.errcode} {result.error}")
        return {"status": "failed", "errcode": result.errcode, "error": result.error}

    sweep = result.results
    if sweep.skipped_count or sweep.failed_entry_ids:
        logger.info(
            f"Expired turn sweep skipped {sweep.skipped_count} entries, "
            f"failed {len(sweep.failed_entry_ids)}"
        )
    return {
        "status": "ok",
        "skipped_count": sweep.skipped_count,
        "failed_entry_ids": sweep.failed_entry_ids,
    }
