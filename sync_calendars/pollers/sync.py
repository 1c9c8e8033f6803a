import logging

from sync_calendars.config import DRY_RUN
from sync_calendars.db.engine import engine
from sync_calendars.logging_config import setup_logging
from sync_calendars.services.holds import sweep_holds
from sync_calendars.services.inbox import retry_unassigned
from sync_calendars.services.sync import sync_all_integrations
from sync_calendars.utils.datetime import utc_now

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


def main() -> None:
    # Feeds first so the inbox retry and the sweep see this cycle's links
    sync_all_integrations(engine, dry_run=DRY_RUN)
    if DRY_RUN:
        logger.info("Dry run: skipping inbox retry and hold sweep")
        return
    retry_unassigned(engine, utc_now())
    sweep_holds(engine, utc_now())


if __name__ == "__main__":
    main()
