from unittest.mock import Mock, patch

import pytest
import requests

from sync_calendars.errors import FeedFetchError
from sync_calendars.network.client import fetch_feed, should_retry

FEED_URL = "https://channel.example/feed.ics"


def _response(status_code: int, text: str = "") -> Mock:
    res = Mock(status_code=status_code, text=text)
    res.ok = 200 <= status_code < 300
    return res


@pytest.mark.unit
@patch("sync_calendars.network.client.requests.get")
def test_fetch_feed_success(mock_get: Mock) -> None:
    """
    Test that fetch_feed returns the body of a 200 response.

    Args:
        mock_get (Mock): Mocked requests.get call.
    """
    mock_get.return_value = _response(200, "BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n")

    assert fetch_feed(FEED_URL).startswith("BEGIN:VCALENDAR")
    assert mock_get.call_count == 1


@pytest.mark.unit
@patch("sync_calendars.network.client.time.sleep")
@patch("sync_calendars.network.client.requests.get")
def test_fetch_feed_retries_server_errors(mock_get: Mock, mock_sleep: Mock) -> None:
    """
    Test that a 503 followed by a 200 succeeds after one retry.

    Args:
        mock_get (Mock): Mocked requests.get call.
        mock_sleep (Mock): Mocked sleep so the test does not wait.
    """
    mock_get.side_effect = [_response(503), _response(200, "BEGIN:VCALENDAR")]

    assert fetch_feed(FEED_URL, max_retries=2) == "BEGIN:VCALENDAR"
    assert mock_get.call_count == 2
    mock_sleep.assert_called_once()


@pytest.mark.unit
@patch("sync_calendars.network.client.time.sleep")
@patch("sync_calendars.network.client.requests.get")
def test_fetch_feed_gives_up_after_max_retries(mock_get: Mock, mock_sleep: Mock) -> None:
    """
    Test that repeated timeouts raise FeedFetchError instead of returning an empty feed.

    Args:
        mock_get (Mock): Mocked requests.get call.
        mock_sleep (Mock): Mocked sleep so the test does not wait.
    """
    mock_get.side_effect = requests.Timeout("read timed out")

    with pytest.raises(FeedFetchError) as exc_info:
        fetch_feed(FEED_URL, max_retries=2)

    assert mock_get.call_count == 3
    assert exc_info.value.context["attempts"] == 3
    assert exc_info.value.context["status_code"] is None


@pytest.mark.unit
@patch("sync_calendars.network.client.time.sleep")
@patch("sync_calendars.network.client.requests.get")
def test_fetch_feed_does_not_retry_client_errors(mock_get: Mock, mock_sleep: Mock) -> None:
    """
    Test that a 404 fails immediately.

    Args:
        mock_get (Mock): Mocked requests.get call.
        mock_sleep (Mock): Mocked sleep.
    """
    mock_get.return_value = _response(404)

    with pytest.raises(FeedFetchError) as exc_info:
        fetch_feed(FEED_URL)

    assert mock_get.call_count == 1
    assert exc_info.value.context["status_code"] == 404
    mock_sleep.assert_not_called()


@pytest.mark.unit
def test_should_retry_rules() -> None:
    """Test which responses and errors are considered transient."""
    assert should_retry(_response(429), None)
    assert should_retry(_response(502), None)
    assert should_retry(None, requests.ConnectionError())
    assert not should_retry(_response(403), None)
    assert not should_retry(None, ValueError())
