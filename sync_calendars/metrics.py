"""
Prometheus metrics for feed polling, reconciliation outcomes and hold lifecycle.

This module defines all Prometheus metrics used throughout the application for
observability and monitoring. Metrics are exposed via the /metrics endpoint for
scraping by Prometheus.

Metric Types:
    - Counter: Cumulative metrics that only increase (e.g., total feed requests)
    - Histogram: Observations bucketed by value (e.g., feed fetch latency)

Example:
    >>> from sync_calendars.metrics import poll_duration, events_parsed
    >>> with poll_duration.labels(integration_id="7").time():
    ...     parsed = parse_feed(fetch_feed(url))
    ...     events_parsed.labels(integration_id="7").inc(len(parsed.events))
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Feed Poll Metrics
# =============================================================================

poll_total = Counter(
    "calendar_sync_feed_polls_total",
    "Total number of feed polling operations (success and failure)",
    ["integration_id", "status"],
)
"""
Counter for total feed polls.

Labels:
    integration_id: Feed integration ID
    status: success or failure
"""

poll_duration = Histogram(
    "calendar_sync_feed_poll_duration_seconds",
    "Duration of feed polling (fetch + parse) in seconds",
    ["integration_id"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, float("inf")),
)
"""
Histogram for feed poll duration.

Buckets: 0.5s, 1s, 2.5s, 5s, 10s, 30s, 60s, 120s, +Inf
"""

events_parsed = Counter(
    "calendar_sync_feed_events_parsed_total",
    "Total number of feed events parsed successfully",
    ["integration_id"],
)
"""Counter for usable events read from feeds."""

events_malformed = Counter(
    "calendar_sync_feed_events_malformed_total",
    "Total number of feed events skipped as malformed",
    ["integration_id"],
)
"""Counter for events skipped because they could not be parsed or localized."""

# =============================================================================
# Feed HTTP Metrics
# =============================================================================

feed_requests = Counter(
    "calendar_sync_feed_requests_total",
    "Total HTTP requests made to external calendar feeds",
    ["status_code"],
)
"""
Counter for HTTP requests to feed URLs.

Labels:
    status_code: HTTP status code, or "timeout" / "error" when no response arrived
"""

feed_latency = Histogram(
    "calendar_sync_feed_request_latency_seconds",
    "Feed HTTP request latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, float("inf")),
)

# =============================================================================
# Reconciliation Metrics
# =============================================================================

reconcile_outcomes = Counter(
    "calendar_sync_reconcile_outcomes_total",
    "Per-event reconciliation outcomes",
    ["outcome"],
)
"""
Counter for what happened to each ingested event.

Labels:
    outcome: added, updated, linked, promoted, cancelled, unassigned,
             conflicts, malformed, failed, unchanged
"""

conflicts_rejected = Counter(
    "calendar_sync_conflicts_rejected_total",
    "Writes rejected by the conflict guard",
    ["source"],
)
"""
Counter for conflict guard rejections.

Labels:
    source: manual, guest-form, channel-feed
"""

inbox_entries_recorded = Counter(
    "calendar_sync_inbox_entries_recorded_total",
    "Unassigned events written to the inbox",
    ["reason"],
)

# =============================================================================
# Soft Hold / Merge Metrics
# =============================================================================

hold_transitions = Counter(
    "calendar_sync_hold_transitions_total",
    "Soft-hold state transitions",
    ["transition"],
)
"""
Counter for placeholder lifecycle transitions.

Labels:
    transition: created, promoted, expired, cancelled
"""

merges_total = Counter(
    "calendar_sync_merges_total",
    "Merge operator attempts by result",
    ["result"],
)
"""
Counter for merge attempts.

Labels:
    result: merged, refused, ambiguous, no_candidates
"""
