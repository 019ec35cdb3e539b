"""Batch job: repair video tasks saved while metadata lookup was failing."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from lineup.observability.metrics import log_metric
from lineup.observability.tracing import trace
from lineup.services.task_fields import derive_task_fields, looks_like_placeholder
from lineup.services.task_store import find_placeholder_video_tasks
from lineup.services.youtube import InvalidVideoUrl, VideoMetadata, fetch_video_metadata

logger = logging.getLogger(__name__)


@dataclass
class RepairRunResult:
    scanned: int
    repaired: int
    failed: int = 0


def run_metadata_repair(
    db: Session,
    *,
    limit: int = 50,
    fetcher: Optional[Callable[[str], VideoMetadata]] = None,
) -> RepairRunResult:
    """Re-resolve metadata for placeholder video tasks and keep any improvement."""
    fetch = fetcher or fetch_video_metadata
    tasks = find_placeholder_video_tasks(db, limit)
    repaired = 0
    failed = 0

    with trace("jobs.metadata_repair", metadata={"candidates": len(tasks)}):
        for task in tasks:
            try:
                metadata = fetch(task.video_url)
            except InvalidVideoUrl:
                failed += 1
                logger.debug("Skipping task %s: link has no video id", task.id)
                continue
            derived = derive_task_fields(task.video_url, task.notes, metadata)
            task.title = derived.title
            task.thumbnail_url = derived.thumbnail_url
            task.video_duration = derived.video_duration
            if looks_like_placeholder(task):
                failed += 1
            else:
                repaired += 1
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

    log_metric("jobs.metadata_repair.repaired", repaired, metadata={"scanned": len(tasks)})
    return RepairRunResult(scanned=len(tasks), repaired=repaired, failed=failed)
