import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import logging

from sync_calendars.db.engine import engine
from sync_calendars.logging_config import setup_logging
from sync_calendars.services.sync import sync_integration

setup_logging()
logger = logging.getLogger(__name__)


def main() -> None:
    """
    Sync a single feed integration from the command line.
    """
    parser = argparse.ArgumentParser(description="Sync one calendar feed integration.")
    parser.add_argument("integration_id", type=int, help="Feed integration ID")
    parser.add_argument("--dry-run", action="store_true", help="Roll back every write")
    args = parser.parse_args()

    logger.info("Starting sync for integration_id=%s", args.integration_id)

    try:
        report = sync_integration(engine, args.integration_id, dry_run=args.dry_run)
        logger.info("Sync finished for integration_id=%s: %s", args.integration_id, report.as_dict())
    except Exception:
        logger.exception("Sync failed for integration_id=%s", args.integration_id)
        raise


if __name__ == "__main__":
    main()
