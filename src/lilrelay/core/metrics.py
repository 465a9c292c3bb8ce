"""
Prometheus metrics collection and exposition.

Defines module-level metric objects (singletons, thread-safe) shared by the
relay service. ``BaseService.run_forever()`` records cycle counts, durations,
and failure streaks; the relay adds its own values through ``set_gauge()``
and ``inc_counter()`` on the base class.

Scraping is served by the relay's own HTTP app (see
[metrics_response()][lilrelay.core.metrics.metrics_response]) on the same
port as the WebSocket endpoint, under ``MetricsConfig.path``.

Architecture:
    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (open connections).
    SERVICE_COUNTER:            Cumulative totals (accepted, rejected, ...).
    CYCLE_DURATION_SECONDS:     Histogram of health-check cycle durations.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is mounted on the relay's HTTP app only when ``enabled``
    is True.
    """

    enabled: bool = Field(default=False, description="Enable metrics exposition")
    path: str = Field(default="/metrics", description="Metrics endpoint path")

    @field_validator("path")
    @classmethod
    def _path_is_absolute(cls, v: str) -> str:
        if not v.startswith("/") or v in ("/", "/ws", "/health"):
            raise ValueError("path must start with '/' and not shadow a relay route")
        return v


# ---------------------------------------------------------------------------
# Common Service Metrics (auto-tracked by BaseService.run_forever)
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "cycle_duration_seconds",
    "Duration of service cycle in seconds",
    ["service"],
    buckets=(0.001, 0.01, 0.1, 1, 5, 10, 30, 60),
)


# ---------------------------------------------------------------------------
# Generic Label-Based Metrics (used via set_gauge/inc_counter)
#
# Automatic labels (BaseService.run_forever):
#   gauge:   consecutive_failures, last_cycle_timestamp
#   counter: cycles_success, cycles_failed, errors_{type}
#
# Relay labels:
#   gauge:   connections, subscriptions, stored_events
#   counter: accepted, rejected, notices, deliveries, slow_consumers, opened, closed
# ---------------------------------------------------------------------------

SERVICE_GAUGE = Gauge(
    "service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


def metrics_response() -> tuple[bytes, str]:
    """Render the default registry for a scrape.

    Returns:
        ``(body, content_type)`` in Prometheus text exposition format.
    """
    return generate_latest(), CONTENT_TYPE_LATEST
