"""Periodic cleanup of expired sessions and revoked refresh tokens."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from garage_ui.database import get_db_context
from garage_ui.services.account import sweep_account_tokens
from garage_ui.services.session_lifecycle import sweep_expired

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "expiry_sweep"


def run_expiry_sweep() -> tuple[int, int]:
    """Run one sweep in its own database session."""
    with get_db_context() as db:
        sessions_deleted, tokens_deleted = sweep_expired(db)
        account_tokens_deleted = sweep_account_tokens(db)
    logger.info(
        f"Expiry sweep removed {sessions_deleted} sessions, {tokens_deleted} refresh tokens "
        f"and {account_tokens_deleted} account tokens"
    )
    return sessions_deleted, tokens_deleted


def build_sweep_scheduler(interval_seconds: int) -> AsyncIOScheduler:
    """Scheduler running ``run_expiry_sweep`` every ``interval_seconds``.

    The job runs in the event loop's default thread pool. A failed run is
    logged by the scheduler and the job stays scheduled for the next tick.
    The caller starts and shuts down the scheduler.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_expiry_sweep,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler
