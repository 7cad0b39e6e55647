# File: app/core/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from typing import Iterable, List
import logging

from app.core.config import settings
from app.services.workflow.dedup import DedupStore, InMemoryDedupStore

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def purge_dedup_stores(stores: Iterable[DedupStore]) -> int:
    """Drop expired fingerprints from in-memory stores. Redis expires its own keys."""
    purged = 0
    for store in stores:
        if isinstance(store, InMemoryDedupStore):
            purged += store.purge_expired()
    if purged:
        logger.info(f"Purged {purged} expired dedup entries")
    return purged


def _dedup_stores() -> List[DedupStore]:
    from app.services.request_service import get_submission_guard
    from app.services.workflow_action_service import workflow_action_service

    return [workflow_action_service.dedup_guard.store, get_submission_guard().store]


def start_scheduler():
    """Start all scheduled jobs"""
    try:
        scheduler.add_job(
            lambda: purge_dedup_stores(_dedup_stores()),
            trigger=IntervalTrigger(seconds=settings.DEDUP_CLEANUP_INTERVAL_SECONDS),
            id='dedup_cleanup',
            name='Purge expired workflow dedup entries',
            replace_existing=True
        )

        scheduler.start()
        logger.info("Scheduler started successfully")
        logger.info(f"Active jobs: {len(scheduler.get_jobs())}")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def stop_scheduler():
    """Stop scheduler gracefully"""
    try:
        if scheduler.running:
            scheduler.shutdown()
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error stopping scheduler: {e}")
