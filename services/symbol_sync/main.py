#!/usr/bin/env python3
"""
Symbol Sync Job
===============

Batch job that reconciles symbol_master with the Finnhub symbol universe.
Intended to run on a schedule (cron, Kubernetes CronJob); each run is
independent and idempotent.

Usage:
    python -m services.symbol_sync.main                  # Sync the configured market
    python -m services.symbol_sync.main --market US      # Override the market
    python -m services.symbol_sync.main --init-schema    # Create tables first

Exit codes:
    0  run completed (symbols on fallback profiles and validation warnings included)
    1  fatal error (universe fetch/decode, database failure, bad configuration)
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import httpx
from pydantic import ValidationError

from shared.config.settings import Settings, get_settings
from shared.utils.logger import configure_logging, get_logger
from shared.utils.metrics import SyncMetrics, build_meter_provider, shutdown_meter_provider
from shared.utils.postgres_client import PostgresClient

from .enricher import ProfileEnricher
from .persistence import SymbolMasterRepository
from .providers.finnhub_provider import FinnhubProvider
from .rate_limiter import RateLimiter
from .tasks.sync_symbol_master import SyncSummary, SyncSymbolMasterTask

logger = get_logger(__name__)


def build_task(
    settings: Settings,
    db: PostgresClient,
    http_client: httpx.AsyncClient,
    metrics: SyncMetrics,
    market: Optional[str] = None
) -> SyncSymbolMasterTask:
    """Wire the pipeline components from settings"""
    provider = FinnhubProvider(
        http_client,
        api_key=settings.finnhub_api_key,
        base_url=settings.finnhub_base_url
    )
    enricher = ProfileEnricher(
        provider,
        RateLimiter(settings.finnhub_requests_per_minute),
        metrics,
        max_retries=settings.finnhub_max_retries,
        retry_delay_seconds=settings.finnhub_retry_delay_seconds
    )
    return SyncSymbolMasterTask(
        provider,
        SymbolMasterRepository(db, metrics),
        enricher,
        metrics,
        market=(market or settings.sync_market).upper(),
        active_ratio_threshold=settings.active_ratio_threshold
    )


async def run(
    settings: Settings,
    market: Optional[str] = None,
    init_schema: bool = False
) -> SyncSummary:
    """Open resources, run one sync and always release them"""
    meter_provider = build_meter_provider(settings)
    metrics = SyncMetrics.from_provider(meter_provider)
    db = PostgresClient(settings.async_database_url, command_timeout=settings.db_command_timeout)

    try:
        await db.connect(min_size=settings.db_pool_min_size, max_size=settings.db_pool_max_size)

        timeout = httpx.Timeout(settings.finnhub_http_timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout) as http_client:
            task = build_task(settings, db, http_client, metrics, market)
            if init_schema:
                await task.repository.ensure_schema()
            return await task.execute()
    finally:
        await db.disconnect()
        shutdown_meter_provider(meter_provider)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile symbol_master with the Finnhub symbol universe"
    )
    parser.add_argument(
        "--market", "-m",
        type=str,
        default=None,
        help="Exchange filter for the universe (default: SYNC_MARKET or US)"
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="Create symbol_master and job_status if missing"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override LOG_LEVEL"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging(args.log_level, "text", service_name="symbol_sync")
        logger.error("invalid_configuration", error=str(e))
        return 1

    configure_logging(
        args.log_level or settings.log_level,
        settings.log_format,
        service_name="symbol_sync"
    )

    try:
        summary = asyncio.run(run(settings, market=args.market, init_schema=args.init_schema))
    except Exception as e:
        logger.error("symbol_sync_aborted", error=str(e), error_type=type(e).__name__)
        return 1

    logger.info("symbol_sync_exit", **summary.as_dict())
    return 0


if __name__ == "__main__":
    sys.exit(main())
