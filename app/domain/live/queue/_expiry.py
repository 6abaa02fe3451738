"""Turn expiry sweep."""

from datetime import timedelta

from loguru import logger

from app.utils.app_errors import AppError

from .._base import BaseService
from .queue_models import AutoSkipResult


class ExpiryOperations(BaseService):
    """Skips turns nobody joined within the turn timeout."""

    async def auto_skip_expired(self) -> AutoSkipResult:
        """Skip every YOUR_TURN entry notified more than the turn timeout ago.

        Each skip is the guarded transition used by manual skips, so an entry
        joined, completed or skipped since the listing is left alone and not
        reported. Only entries this sweep actually moved are counted; an entry
        that errors is logged, reported in `failed_entry_ids` and the sweep
        moves on.
        """
        cutoff = self.now() - timedelta(seconds=self.rules.turn_timeout_seconds)
        expired = await self.store.list_expired_turns(cutoff)
        if not expired:
            return AutoSkipResult(skipped_count=0)

        logger.info(f"Found {len(expired)} expired turns (notified before {cutoff.isoformat()})")

        skipped_ids: list[str] = []
        failed_ids: list[str] = []
        for entry in expired:
            try:
                await self._require_session(entry.session_id)
                skipped = await self._skip_and_release(entry, "turn timeout")
                if skipped is None:
                    # Joined, completed or skipped by someone else since the listing
                    logger.debug(f"Expired turn {entry.entry_id} already resolved, nothing to skip")
                    continue
                skipped_ids.append(entry.entry_id)
            except AppError as e:
                logger.warning(f"Auto-skip of entry {entry.entry_id} failed: {e.errcode} {e.errmesg}")
                failed_ids.append(entry.entry_id)
            except Exception:
                logger.exception(f"Auto-skip of entry {entry.entry_id} failed")
                failed_ids.append(entry.entry_id)

        logger.info(f"Auto-skip sweep skipped {len(skipped_ids)} expired turns")
        return AutoSkipResult(
            skipped_count=len(skipped_ids),
            skipped_entry_ids=skipped_ids,
            failed_entry_ids=failed_ids,
        )
