"""Scheduler for periodic property collection and analysis."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from dealflow.analysis.batch import BatchAnalyzer
from dealflow.analysis.engine import PropertyAnalyzer
from dealflow.collector import PropertyCollector, group_by_zip
from dealflow.config import AppConfig, Settings
from dealflow.models import BatchAnalysisResult, CollectionResult, utcnow
from dealflow.rent.estimator import RentalEstimator
from dealflow.sources import create_source
from dealflow.sources.base import PropertySource
from dealflow.storage.repository import AnalysisRepository

logger = logging.getLogger(__name__)


async def run_cycle(
    cfg: AppConfig,
    settings: Settings,
    source: PropertySource | None = None,
    repo: AnalysisRepository | None = None,
    batch_analyzer: BatchAnalyzer | None = None,
) -> Optional[CollectionResult]:
    """Execute one collect -> analyze -> store -> clean up cycle.

    Returns None when the cycle was skipped.
    """
    logger.info("Starting scheduled data collection at %s", utcnow().isoformat())

    if source is None:
        if not settings.rapidapi_key:
            logger.error("RAPIDAPI_KEY not configured. Skipping data collection.")
            return None
        source = create_source(cfg.listing_api, settings.rapidapi_key, settings.rapidapi_host)

    if source.remaining_requests <= 0:
        logger.warning(
            "No API requests remaining. Next reset in %.0f seconds.", source.time_until_reset
        )
        return None

    repo = repo or AnalysisRepository(settings.data_path or cfg.storage.data_path)
    if batch_analyzer is None:
        estimator = RentalEstimator.from_config(cfg.financial.rental)
        batch_analyzer = BatchAnalyzer(PropertyAnalyzer(estimator))

    buybox = cfg.buybox
    try:
        result = await PropertyCollector(source, repo).collect(buybox)
    finally:
        await source.close()

    if not result.success:
        for error in result.errors:
            logger.error("%s: %s", error.error_type, error.error_message)
    else:
        logger.info(
            "Fetched %d properties across %d zip codes; %d API requests remaining",
            result.stats.total_properties,
            result.stats.zip_codes_processed,
            result.stats.remaining_requests,
        )
        for zip_code, properties in group_by_zip(result.properties).items():
            batch: BatchAnalysisResult = batch_analyzer.analyze_batch(properties, cfg.financial)
            repo.save_analysis_results(zip_code, batch.results, buybox.name)
            for error in batch.errors:
                error.context.buybox_name = buybox.name
                repo.save_error(error)
            logger.info(
                "Zip %s: %d analyzed, %d failed",
                zip_code,
                batch.successful_analyses,
                batch.failed_analyses,
            )

    repo.cleanup_old_data(cfg.storage.retention_days)
    return result


def _run_cycle_sync(cfg: AppConfig, settings: Settings) -> None:
    """Synchronous wrapper for the async cycle. Failures are logged; the next run still fires."""
    try:
        asyncio.run(run_cycle(cfg, settings))
    except Exception:
        logger.exception("Scheduled data collection failed")


def build_scheduler(cfg: AppConfig, settings: Settings) -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=cfg.scheduler.timezone)
    scheduler.add_job(
        _run_cycle_sync,
        trigger=CronTrigger.from_crontab(cfg.scheduler.cron_schedule, timezone=cfg.scheduler.timezone),
        args=[cfg, settings],
        id="collection_cycle",
        name="Property Collection Cycle",
    )
    return scheduler


def start_scheduler(cfg: AppConfig, settings: Settings | None = None) -> None:
    """Start the blocking scheduler."""
    if not cfg.scheduler.enabled:
        logger.info("Data collection scheduler is disabled")
        return

    scheduler = build_scheduler(cfg, settings or Settings())
    logger.info(
        "Scheduler started with cron '%s' (%s)",
        cfg.scheduler.cron_schedule,
        cfg.scheduler.timezone,
    )

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")
        scheduler.shutdown()
