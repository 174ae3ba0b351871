"""
Command-line entry point for the article sync job.

Meant to be invoked on an interval by an external scheduler. Exits 0 when
the run completes (per-article errors included) and 1 on a fatal error.
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

import structlog

from article_sync.config import Settings, get_settings
from article_sync.jobs.sync_articles import run_sync_job

logger = structlog.get_logger()


def configure_logging(level: str = "INFO"):
    """Configure structured logging on top of the stdlib root logger."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="article-sync",
        description="Fetch, summarize and store news articles, then prune stale ones.",
    )
    parser.add_argument(
        "--database-url",
        help="Async SQLAlchemy URL (overrides DATABASE_URL)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (overrides LOG_LEVEL)",
    )
    parser.add_argument(
        "--skip-cleanup",
        action="store_true",
        help="Do not delete stored articles missing from this run",
    )
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    overrides = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    return settings.model_copy(update=overrides) if overrides else settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args)
    configure_logging(settings.log_level)

    logger.info(
        "Starting article sync job",
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        stats = asyncio.run(run_sync_job(settings, skip_cleanup=args.skip_cleanup))
    except Exception as e:
        logger.error("Article sync job failed", error=str(e))
        return 1

    print(stats)
    return 0


if __name__ == "__main__":
    sys.exit(main())
