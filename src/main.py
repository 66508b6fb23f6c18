"""
Silver Layer Load Entry Point

Runs one full refresh of the silver layer from the configured raw
extracts into the configured destination.

Usage:
    silver-load
    python -m src.main
"""

import sys

import structlog

from src.config.logging import configure_logging
from src.database.connection import close_database
from src.errors import ErrorReport, SilverLoadError
from src.pipeline.orchestrator import create_pipeline

logger = structlog.get_logger(__name__)


def main() -> int:
    """Run the load; exit status 0 on success, 1 on failure."""
    configure_logging()

    try:
        try:
            pipeline = create_pipeline()
        except SilverLoadError as e:
            error = ErrorReport.from_exception(e)
            logger.error("Silver load could not start", **error.model_dump(mode="json"))
            return 1

        report = pipeline.run()
    finally:
        close_database()

    if report.succeeded:
        logger.info(
            "Silver load finished",
            run_id=report.run_id,
            tables=len(report.tables),
            duration_seconds=report.duration_seconds,
        )
        return 0

    logger.error(
        "Silver load aborted",
        run_id=report.run_id,
        loaded_tables=[t.table.value for t in report.tables],
        **report.error.model_dump(mode="json"),
    )
    return 1


if __name__ == "__main__":
    sys.exit(main())
