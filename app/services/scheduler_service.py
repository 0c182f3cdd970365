"""
Scratch directory sweep scheduler.

Runs ArtifactStore.sweep_expired on an interval with APScheduler's
BackgroundScheduler, started and stopped with the FastAPI application.
"""

from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.services.artifact_service import ArtifactStore
from app.utils.logging_utils import get_logger


logger = get_logger("scheduler")

SWEEP_JOB_ID = "artifact_sweep"


class SweepScheduler:
    """Owns the background scheduler for the periodic artifact sweep."""

    def __init__(self, store: ArtifactStore, interval_minutes: float = 30, max_age_minutes: float = 60):
        self.store = store
        self.interval_minutes = interval_minutes
        self.max_age_seconds = max_age_minutes * 60
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def sweep(self) -> dict:
        """One sweep pass. Failures are logged so the job keeps its schedule."""
        try:
            return self.store.sweep_expired(self.max_age_seconds)
        except Exception as e:
            logger.error(f"Sweep failed: {e}")
            return {"deleted": 0, "freed_bytes": 0}

    def start(self) -> None:
        if self._scheduler is not None:
            logger.warning("Sweep scheduler already running, skipping start")
            return

        self._scheduler = BackgroundScheduler(
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
            }
        )
        self._scheduler.add_job(
            func=self.sweep,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=SWEEP_JOB_ID,
            name='Temporary artifact sweep',
            replace_existing=True,
        )
        self._scheduler.start()

        next_run = self._scheduler.get_job(SWEEP_JOB_ID).next_run_time
        logger.info(
            f"Sweep scheduler started: every {self.interval_minutes} min, "
            f"max age {self.max_age_seconds / 60:.0f} min, next run {next_run:%Y-%m-%d %H:%M:%S}"
        )

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Sweep scheduler stopped")
