"""Main application entry point for the Komodo Prometheus exporter."""

import argparse
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry

from .collectors.server_stats_collector import ServerStatsCollector
from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .services.komodo_client import KomodoClient
from .services.prom_exporter import PromExporter, ScrapeMetrics, render
from .services.scraper import Scraper
from .utils.logger import SERVER_LOGGERS, setup_logger


def build_app(
    config: ExporterConfig,
    logger: logging.Logger = None,
    client: Optional[KomodoClient] = None
) -> FastAPI:
    """
    Wire client, collector, publisher and HTTP routes into one app.

    Args:
        config: Validated exporter configuration
        logger: Optional logger instance
        client: Optional pre-built Komodo client (tests inject a fake transport)

    Returns:
        FastAPI: Application serving /metrics and /healthz
    """
    logger = logger or setup_logger("komodo_exporter", config.log_level)

    # Only what is registered here is exported
    registry = CollectorRegistry()
    client = client or KomodoClient(config.komodo, logger)
    scraper = Scraper(
        ServerStatsCollector(client, config.collector, logger),
        PromExporter(registry),
        ScrapeMetrics(registry),
        logger
    )
    interval_mode = config.scrape.mode == "interval"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if interval_mode:
            scheduler = AsyncIOScheduler()
            scheduler.add_job(
                _scheduled_run,
                trigger=IntervalTrigger(seconds=config.scrape.interval),
                id='scrape_cycle',
                name='Komodo scrape cycle',
                max_instances=1,  # Prevent overlapping executions
                coalesce=True,
                next_run_time=datetime.now()  # first cycle immediately
            )
            scheduler.start()
            logger.info(f"Scraping every {config.scrape.interval:g}s")
        else:
            logger.info("Scraping on each /metrics request")

        try:
            yield
        finally:
            if scheduler and scheduler.running:
                scheduler.shutdown(wait=False)
            await client.aclose()
            logger.info("Exporter stopped")

    async def _scheduled_run():
        await scraper.run(time.monotonic() + config.scrape.timeout)

    app = FastAPI(
        title="Komodo Exporter",
        description="Prometheus exporter for Komodo server stats",
        lifespan=lifespan
    )
    app.state.scraper = scraper
    app.state.registry = registry

    @app.get("/metrics")
    async def metrics():
        """Prometheus scrape endpoint."""
        if not interval_mode:
            await scraper.run(time.monotonic() + config.scrape.timeout)
        return Response(content=render(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz():
        """Liveness check."""
        return "ok"

    return app


def load_config(config_path: Optional[str] = None) -> ExporterConfig:
    """
    Load configuration from a YAML file if given, else from the environment.

    Raises:
        SystemExit: If configuration is missing or invalid
    """
    try:
        if config_path:
            return ConfigLoader.load_from_file(config_path)
        return ConfigLoader.load_from_env()

    except FileNotFoundError as e:
        logging.error(str(e))
        sys.exit(1)

    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def main():
    """
    CLI entry point.

    Parses command-line arguments, loads configuration and serves metrics
    until SIGINT/SIGTERM.
    """
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for Komodo server stats',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Configure from KOMODO_* environment variables
  komodo-exporter

  # Use a YAML config file (supports ${ENV_VAR} placeholders)
  komodo-exporter --config /etc/komodo-exporter.yaml
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help='Path to YAML configuration file (default: read environment)'
    )

    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL env var or INFO)'
    )

    args = parser.parse_args()

    # Root handler for errors raised before the JSON logger exists
    logging.basicConfig(level=logging.INFO)
    config = load_config(args.config)
    if args.log_level:
        config.log_level = args.log_level

    logger = setup_logger("komodo_exporter", config.log_level, server_loggers=SERVER_LOGGERS)
    host, port = config.server.bind

    try:
        app = build_app(config, logger)
        logger.info(f"serving metrics on http://{host}:{port}/metrics")
        uvicorn.run(app, host=host, port=port, log_config=None)
    except Exception as e:
        logger.error(f"Exporter failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
