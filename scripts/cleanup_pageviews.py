#!/usr/bin/env python3
"""
Retention cleanup for stored pageviews.

Deletes pageviews and custom events older than the retention period
(``database.retention_months`` / ``DATA_RETENTION_MONTHS``, default 24).
Meant to run from cron.

Usage:
    python scripts/cleanup_pageviews.py [--months N] [--dry-run] [--config FILE]
"""

import argparse
import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config_manager import ConfigManager, parse_retention_months
from ingest_service import PersistenceError, setup_logging, stop_logging
from ingest_service.storage import PersistenceWriter, create_engine, create_session_factory
from ingest_service.storage.retention import purge_expired

logger = logging.getLogger("cleanup_pageviews")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Delete pageviews older than the retention period"
    )
    parser.add_argument(
        "--months",
        type=str,
        default=None,
        help="Retention period in months (default: from configuration)"
    )
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Count matching rows without deleting them"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="collector_config.json",
        help="Path to the configuration file (default: collector_config.json)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        db_config = ConfigManager(args.config).get_database_config()
        months = parse_retention_months(args.months) if args.months is not None else db_config.retention_months

        engine = create_engine(db_config.url, connect_timeout=db_config.connect_timeout)
        writer = PersistenceWriter(create_session_factory(engine), max_retries=db_config.max_retries)

        try:
            result = purge_expired(writer, months, dry_run=args.dry_run)
        except PersistenceError as e:
            logger.error(f"Retention cleanup failed: {e}")
            return 1
        finally:
            engine.dispose()

        if result["dry_run"]:
            logger.info(f"{result['would_delete']} pageviews older than {months} months would be deleted")
        else:
            logger.info(f"Deleted {result['deleted']} pageviews older than {months} months")
        return 0
    finally:
        stop_logging()


if __name__ == "__main__":
    sys.exit(main())
