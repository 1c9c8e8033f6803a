import structlog

from sync_calendars.config import DEBUG
from sync_calendars.metrics import events_malformed, events_parsed, poll_duration, poll_total
from sync_calendars.network.client import fetch_feed
from sync_calendars.normalizers.events import ParsedFeed
from sync_calendars.normalizers.ical import parse_feed

logger = structlog.get_logger(__name__)


def poll_feed(integration_id: int, url: str) -> ParsedFeed:
    """
    Fetch and parse one integration's calendar feed.

    Args:
        integration_id (int): Feed integration ID (metrics label)
        url (str): Feed URL

    Returns:
        ParsedFeed: normalized events and malformed count

    Raises:
        FeedFetchError: feed unreachable or timed out
        FeedParseError: feed body is not a calendar
    """
    label = str(integration_id)
    with poll_duration.labels(integration_id=label).time():
        try:
            document = fetch_feed(url)
            parsed = parse_feed(document)

            if DEBUG and parsed.events:
                logger.debug("Sample feed event: %r", parsed.events[0])

            logger.info(
                "Fetched %d events (%d malformed) from feed [integration_id=%d]",
                len(parsed.events),
                parsed.malformed,
                integration_id,
            )

            events_parsed.labels(integration_id=label).inc(len(parsed.events))
            events_malformed.labels(integration_id=label).inc(parsed.malformed)
            poll_total.labels(integration_id=label, status="success").inc()

            return parsed
        except Exception:
            poll_total.labels(integration_id=label, status="failure").inc()
            raise
