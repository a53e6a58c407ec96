"""
Prometheus metrics for the replay loop.

Exposes replay progress via an HTTP /metrics endpoint for Prometheus scraping.

Usage:
    from replayer.metrics import start_metrics_server, track_event_sent

    start_metrics_server(enabled=True, port=8080)
    track_event_sent()
"""

import logging
import threading

from prometheus_client import Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)

EVENTS_SENT: "Counter" = None  # type: ignore
SEND_FAILURES: "Counter" = None  # type: ignore
WATERMARKS_EMITTED: "Counter" = None  # type: ignore
WATERMARKS_SKIPPED: "Counter" = None  # type: ignore
INFLIGHT_EVENTS: "Gauge" = None  # type: ignore
REPLAY_LAG: "Gauge" = None  # type: ignore
LAST_WATERMARK: "Gauge" = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Initialize Prometheus metrics (call once at startup).

    Thread-safe via module-level lock; repeated calls are no-ops.
    """
    global EVENTS_SENT, SEND_FAILURES, WATERMARKS_EMITTED, WATERMARKS_SKIPPED
    global INFLIGHT_EVENTS, REPLAY_LAG, LAST_WATERMARK
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        EVENTS_SENT = Counter(
            "replay_events_sent_total",
            "Total number of events submitted to the destination stream",
        )
        SEND_FAILURES = Counter(
            "replay_send_failures_total",
            "Total number of events the destination failed to acknowledge",
        )
        WATERMARKS_EMITTED = Counter(
            "replay_watermarks_emitted_total",
            "Total number of watermark cycles sent to all shards",
        )
        WATERMARKS_SKIPPED = Counter(
            "replay_watermarks_skipped_total",
            "Total number of watermark cycles abandoned due to throttling",
        )
        INFLIGHT_EVENTS = Gauge(
            "replay_inflight_events",
            "Events submitted but not yet acknowledged",
        )
        REPLAY_LAG = Gauge(
            "replay_lag_seconds",
            "Seconds the replay is running behind the target pace",
        )
        LAST_WATERMARK = Gauge(
            "replay_last_watermark_millis",
            "Most recent watermark in epoch milliseconds",
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in a background daemon thread.

    Server listens on 0.0.0.0:<port>/metrics.
    """
    if not enabled:
        logger.debug("Metrics server disabled")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")


def track_event_sent() -> None:
    if EVENTS_SENT is not None:
        EVENTS_SENT.inc()


def track_send_failure() -> None:
    if SEND_FAILURES is not None:
        SEND_FAILURES.inc()


def track_watermark(watermark: int, skipped: bool = False) -> None:
    if skipped:
        if WATERMARKS_SKIPPED is not None:
            WATERMARKS_SKIPPED.inc()
        return
    if WATERMARKS_EMITTED is not None:
        WATERMARKS_EMITTED.inc()
    if LAST_WATERMARK is not None:
        LAST_WATERMARK.set(watermark)


def set_progress(inflight: int, lag_seconds: float) -> None:
    if INFLIGHT_EVENTS is not None:
        INFLIGHT_EVENTS.set(inflight)
    if REPLAY_LAG is not None:
        REPLAY_LAG.set(lag_seconds)
