"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from lineup.core.config import settings
from lineup.core.logging import configure_logging
from lineup.db.session import SessionLocal
from lineup.observability.client import flush_opik
from lineup.services.job_runner import run_metadata_repair


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running metadata repair once on startup")
            _run_metadata_repair_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        flush_opik()
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        _run_metadata_repair_job,
        trigger="interval",
        minutes=settings.metadata_repair_interval_minutes,
        id="metadata_repair_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        "Registered metadata repair job (every %s min, batch=%s)",
        settings.metadata_repair_interval_minutes,
        settings.metadata_repair_batch_size,
    )


def _run_metadata_repair_job() -> None:
    session = SessionLocal()
    try:
        result = run_metadata_repair(session, limit=settings.metadata_repair_batch_size)
        logger.info(
            "Metadata repair complete: scanned=%s, repaired=%s, failed=%s",
            result.scanned,
            result.repaired,
            result.failed,
        )
    except Exception:  # pragma: no cover - keep the worker alive
        logger.exception("Metadata repair job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
