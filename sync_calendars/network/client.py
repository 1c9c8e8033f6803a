"""
HTTP client for fetching external calendar feeds with bounded timeouts and retries.
"""

import time
from typing import Optional

import requests
import structlog

from sync_calendars.config import FEED_MAX_RETRIES, FEED_TIMEOUT_SECONDS
from sync_calendars.errors import FeedFetchError
from sync_calendars.metrics import feed_latency, feed_requests

logger = structlog.get_logger(__name__)

RETRY_DELAY = 1.5
USER_AGENT = "sync-calendars/1.0 (+calendar feed reader)"


def should_retry(res: Optional[requests.Response], err: Optional[Exception]) -> bool:
    """
    Determine whether the request should be retried based on response or error.

    Args:
        res (Optional[requests.Response]): Response object if available.
        err (Optional[Exception]): Exception raised by the request, if any.

    Returns:
        bool: True if the request should be retried, False otherwise.
    """
    if res is not None and res.status_code == 429:
        return True
    if isinstance(err, (requests.Timeout, requests.ConnectionError)):
        return True
    if res is not None and 500 <= res.status_code < 600:
        return True
    return False


def fetch_feed(
    url: str,
    timeout: float = FEED_TIMEOUT_SECONDS,
    max_retries: int = FEED_MAX_RETRIES,
) -> str:
    """
    Download a calendar feed document.

    A fetch that keeps failing is abandoned and reported as ``FeedFetchError``;
    it is never turned into an empty document.

    Args:
        url (str): Feed URL
        timeout (float): Per-request timeout in seconds
        max_retries (int): Retries after the first attempt for retryable failures

    Returns:
        str: The response body

    Raises:
        FeedFetchError: on timeout, connection failure or a non-2xx status
    """
    retries = 0

    while True:
        res: Optional[requests.Response] = None
        err: Optional[Exception] = None
        start_time = time.time()
        try:
            res = requests.get(
                url,
                headers={"User-Agent": USER_AGENT, "Accept": "text/calendar, */*"},
                timeout=timeout,
            )
            feed_requests.labels(status_code=str(res.status_code)).inc()
        except requests.Timeout as exc:
            err = exc
            feed_requests.labels(status_code="timeout").inc()
        except requests.RequestException as exc:
            err = exc
            feed_requests.labels(status_code="error").inc()
        finally:
            feed_latency.observe(time.time() - start_time)

        if res is not None and res.ok:
            return res.text

        reason = str(err) if err is not None else f"HTTP {res.status_code}"  # type: ignore[union-attr]
        logger.warning("feed_fetch_attempt_failed", url=url, attempt=retries + 1, reason=reason)

        if retries >= max_retries or not should_retry(res, err):
            raise FeedFetchError(
                "Feed could not be fetched",
                url=url,
                attempts=retries + 1,
                reason=reason,
                status_code=res.status_code if res is not None else None,
            )

        retries += 1
        time.sleep(RETRY_DELAY * retries)
