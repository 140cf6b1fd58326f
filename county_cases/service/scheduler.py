"""APScheduler wiring for periodic ingestion runs."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from county_cases.common.config_loader import Settings
from county_cases.pipeline.ingest import IngestionPipeline

logger = logging.getLogger(__name__)

JOB_ID = "ingest_county_cases"


def build_scheduler(
    pipeline: IngestionPipeline,
    settings: Settings,
    *,
    run_now: bool = False,
) -> BackgroundScheduler:
    """Return a configured but not yet started scheduler with one ingestion job.

    ``max_instances=1`` keeps a slow run from overlapping the next trigger;
    missed triggers are coalesced into a single run. With ``run_now`` the same
    job fires once at startup, so that run is covered by the same guard.
    """
    scheduler = BackgroundScheduler(timezone=settings.timezone)
    extra: dict[str, Any] = {}
    if run_now:
        extra["next_run_time"] = datetime.now(timezone.utc)
    scheduler.add_job(
        pipeline.run,
        trigger=CronTrigger.from_crontab(settings.cron, timezone=settings.timezone),
        id=JOB_ID,
        name="County cases ingestion",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.misfire_grace_seconds,
        **extra,
    )
    return scheduler
