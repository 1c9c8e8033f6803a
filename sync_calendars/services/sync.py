"""Feed-level sync orchestrator: fetch, reconcile, record."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from sqlalchemy.engine import Engine

from sync_calendars.config import FEED_FETCH_CONCURRENCY
from sync_calendars.db.readers.integrations import get_integration, list_active_integrations
from sync_calendars.db.writers.integrations import record_sync_result
from sync_calendars.db.writers.sync_logs import insert_sync_log
from sync_calendars.errors import CalendarSyncError, NotFoundError, ValidationError
from sync_calendars.logging_config import log_context
from sync_calendars.models.enums import SyncStatus
from sync_calendars.normalizers.events import ParsedFeed
from sync_calendars.pollers.feeds import poll_feed
from sync_calendars.services.reconcile import FeedScope, SyncCounters, reconcile_feed
from sync_calendars.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


@dataclass
class FeedSyncReport:
    integration_id: int
    property_id: int
    status: str
    counters: SyncCounters
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "integration_id": self.integration_id,
            "property_id": self.property_id,
            "status": self.status,
            "error": self.error,
            **self.counters.as_dict(),
        }


def _run_feed(
    engine: Engine,
    integration: Any,
    fetch: Callable[[], ParsedFeed],
    now: Optional[datetime],
    dry_run: bool,
) -> FeedSyncReport:
    """
    Reconcile one feed and record the outcome. Never raises.

    A fetch or parse failure leaves every reservation untouched: an
    unreachable feed is not an empty feed.
    """
    started_at = utc_now()
    counters = SyncCounters()
    error: Optional[str] = None

    with log_context(integration_id=integration.id, property_id=integration.property_id):
        try:
            parsed = fetch()
            with engine.connect() as conn:
                scope = FeedScope.from_integration(conn, integration)
            counters = reconcile_feed(engine, scope, parsed, now or utc_now(), dry_run=dry_run)
        except CalendarSyncError as exc:
            error = f"{type(exc).__name__}: {exc.message}"
            logger.warning("feed_sync_failed", error=error, **exc.context)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.exception("feed_sync_crashed", error=str(exc))

        status = SyncStatus.OK.value if error is None else SyncStatus.ERROR.value
        finished_at = utc_now()

        if not dry_run:
            with engine.begin() as conn:
                insert_sync_log(
                    conn,
                    integration.id,
                    status,
                    started_at,
                    finished_at,
                    counters=counters.as_dict(),
                    error_message=error,
                )
                record_sync_result(conn, integration.id, status, finished_at, error=error)

        logger.info("feed_sync_completed", status=status, dry_run=dry_run, **counters.as_dict())

    return FeedSyncReport(integration.id, integration.property_id, status, counters, error)


def sync_integration(
    engine: Engine,
    integration_id: int,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> FeedSyncReport:
    """
    Sync a single feed integration.

    Args:
        engine (Engine): Database engine.
        integration_id (int): Feed to sync.
        now (Optional[datetime]): Clock override; defaults to the time of reconciliation.
        dry_run (bool): If True, roll back every write.

    Raises:
        NotFoundError: unknown integration
        ValidationError: the integration is deactivated
    """
    with engine.connect() as conn:
        integration = get_integration(conn, integration_id)
    if integration is None:
        raise NotFoundError("Integration not found", integration_id=integration_id)
    if not integration.is_active:
        raise ValidationError("Integration is not active", integration_id=integration_id)

    return _run_feed(
        engine, integration, lambda: poll_feed(integration.id, integration.url), now, dry_run
    )


def sync_all_integrations(
    engine: Engine, dry_run: bool = False, now: Optional[datetime] = None
) -> list[FeedSyncReport]:
    """
    Run every active feed.

    Fetches run concurrently; each feed is reconciled as soon as its fetch
    completes, so a slow or unreachable feed never holds up the others.

    Args:
        engine (Engine): Database engine.
        dry_run (bool): If True, do not write to DB.
        now (Optional[datetime]): Clock override.
    """
    logger.info("sync_all_integrations_started")

    with engine.connect() as conn:
        integrations = list_active_integrations(conn)

    logger.info("active_integrations_found", count=len(integrations))

    reports: list[FeedSyncReport] = []
    with ThreadPoolExecutor(max_workers=FEED_FETCH_CONCURRENCY) as pool:
        futures = {pool.submit(poll_feed, row.id, row.url): row for row in integrations}
        for future in as_completed(futures):
            reports.append(_run_feed(engine, futures[future], future.result, now, dry_run))

    logger.info(
        "sync_all_integrations_completed",
        total_integrations=len(integrations),
        failed=sum(1 for report in reports if report.status != SyncStatus.OK.value),
    )
    return sorted(reports, key=lambda report: report.integration_id)
