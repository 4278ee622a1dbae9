"""Interval trigger for unattended pipeline runs using APScheduler."""

import asyncio
import logging
from datetime import datetime
from typing import NoReturn

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from shipline.config import Settings
from shipline.pipeline.runner import run_pipeline
from shipline.storage.history import next_build_number

logger = logging.getLogger(__name__)


def pipeline_job(settings: Settings) -> None:
    """Scheduler job wrapper for one pipeline run (blocking)."""
    build_number = next_build_number(settings.data_dir)

    try:
        result = asyncio.run(run_pipeline(settings, build_number=build_number))
        logger.info(f"✓ Build #{build_number}: {result.outcome.value}")
    except Exception as e:
        logger.error(f"Build #{build_number} failed: {e}", exc_info=True)


def start_scheduler(settings: Settings, interval_minutes: int | None = None) -> NoReturn:
    """Run the pipeline now and then on a fixed interval, never overlapping."""
    minutes = interval_minutes or settings.scheduler.interval_minutes
    scheduler = BlockingScheduler()

    # One run at a time: dev and prod namespaces are shared by every run
    scheduler.add_job(
        pipeline_job,
        IntervalTrigger(minutes=minutes),
        args=[settings],
        id="delivery-pipeline",
        name="Delivery pipeline",
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(),
    )
    logger.info(f"Registered job: Delivery pipeline (every {minutes} min)")

    try:
        logger.info("✓ Scheduler starting...")
        logger.info("Press Ctrl+C to stop\n")

        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal")
        scheduler.shutdown()
        logger.info("✓ Scheduler stopped cleanly")
