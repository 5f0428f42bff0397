"""
Sheet Sync Worker
Background worker that periodically reconciles the Google Sheet into the dialer

Run as separate process:
    python -m powerdialer.workers.sheet_sync_worker
"""
import asyncio
import logging
import signal
from typing import Callable, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from powerdialer.core.config import get_settings
from powerdialer.domain.interfaces.lead_source import LeadSource
from powerdialer.domain.models.dialer_reports import ImportResult
from powerdialer.domain.services.reconciliation_service import ReconciliationService


logger = logging.getLogger(__name__)


class SheetSyncWorker:
    """
    Runs a reconciliation pass every `interval_seconds`.

    Each pass builds a fresh source so credentials and HTTP connections
    are never held between passes. Failed passes back off; too many in
    a row stop the worker.
    """

    MAX_CONSECUTIVE_ERRORS = 10
    SLEEP_STEP = 1.0

    def __init__(
        self,
        reconciliation: ReconciliationService,
        source_factory: Callable[[], LeadSource],
        interval_seconds: float = 900,
    ):
        self.reconciliation = reconciliation
        self.source_factory = source_factory
        self.interval_seconds = interval_seconds

        self.running = False

        # Stats
        self._passes_completed = 0
        self._passes_failed = 0
        self._last_result: Optional[ImportResult] = None

    async def run_once(self) -> ImportResult:
        """Fetch and reconcile one snapshot of the source."""
        source = self.source_factory()
        try:
            result = await asyncio.to_thread(self.reconciliation.reconcile_source, source)
        finally:
            close = getattr(source, "close", None)
            if close:
                close()

        self._passes_completed += 1
        self._last_result = result
        logger.info(
            f"Sheet sync pass {self._passes_completed}: imported={result.imported}, "
            f"duplicates={result.duplicates}, skipped={result.skipped}, errors={len(result.errors)}"
        )
        return result

    async def _sleep(self, seconds: float) -> None:
        """Sleep in short steps so a shutdown signal is noticed quickly."""
        remaining = seconds
        while self.running and remaining > 0:
            step = min(self.SLEEP_STEP, remaining)
            await asyncio.sleep(step)
            remaining -= step

    async def run(self) -> None:
        self.running = True
        consecutive_errors = 0

        logger.info(f"Sheet Sync Worker started - syncing every {self.interval_seconds}s")

        while self.running:
            try:
                await self.run_once()
                consecutive_errors = 0
                await self._sleep(self.interval_seconds)

            except asyncio.CancelledError:
                logger.info("Worker received cancellation signal")
                break
            except Exception as e:
                consecutive_errors += 1
                self._passes_failed += 1
                logger.error(f"Sync error ({consecutive_errors}): {e}", exc_info=True)

                if consecutive_errors >= self.MAX_CONSECUTIVE_ERRORS:
                    logger.critical("Too many consecutive errors, stopping worker")
                    break

                await self._sleep(min(5 * consecutive_errors, 60))

        self.running = False

    async def shutdown(self) -> None:
        """Graceful shutdown."""
        logger.info("Shutting down Sheet Sync Worker...")
        self.running = False
        logger.info(
            f"Sheet Sync Worker shutdown complete. "
            f"Passes: {self._passes_completed}, Failed: {self._passes_failed}"
        )

    def get_stats(self) -> dict:
        """Get worker statistics."""
        return {
            "running": self.running,
            "passes_completed": self._passes_completed,
            "passes_failed": self._passes_failed,
            "last_result": self._last_result.model_dump() if self._last_result else None,
        }


def build_worker() -> SheetSyncWorker:
    """Wire the worker from environment settings and YAML config."""
    from powerdialer.api.v1.dependencies import (
        get_config_manager,
        get_lead_store,
        get_sheet_source,
    )
    from powerdialer.domain.models.lead import DEFAULT_MAX_ATTEMPTS

    settings = get_settings()
    config = get_config_manager()
    reconciliation = ReconciliationService(
        get_lead_store(),
        default_max_attempts=config.get("dialer.default_max_attempts", DEFAULT_MAX_ATTEMPTS),
    )
    return SheetSyncWorker(
        reconciliation,
        source_factory=get_sheet_source,
        interval_seconds=settings.sync_interval_seconds,
    )


async def main():
    """Entry point for running the sync worker as separate process."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    worker = build_worker()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        worker.running = False

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await worker.run()
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
