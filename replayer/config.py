"""
Replay configuration.

Defaults replay the public NYC taxi reference dataset into a stream named
taxi-trip-events. Every field can be overridden from the environment
(REPLAY_*) and again from the command line.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

from .core.clock import MIN_SLEEP_MILLIS
from .core.errors import ConfigError


def _env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None or val == "":
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def _env_number(key: str, default, cast):
    val = os.getenv(key)
    if val is None or val == "":
        return default
    try:
        return cast(val)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {val!r}") from e


@dataclass
class ReplayConfig:
    region: str = "eu-west-1"
    bucket: str = "aws-bigdata-blog"
    prefix: str = "artifacts/flink-refarch/data/"
    stream_name: str = "taxi-trip-events"
    speedup: float = 1440.0
    watermarks_enabled: bool = True
    watermark_interval_ms: int = 10_000
    watermark_event_count: int = 10_000
    min_sleep_ms: float = MIN_SLEEP_MILLIS
    stats_interval_ms: int = 60_000
    timestamp_field: str = "dropoff_datetime"
    record_max_buffered_time_ms: int = 3_000
    max_retries: int = 3
    endpoint_url: Optional[str] = None
    source_region: str = "us-east-1"

    @staticmethod
    def from_env() -> "ReplayConfig":
        d = ReplayConfig()
        return ReplayConfig(
            region=os.getenv("REPLAY_REGION", d.region),
            bucket=os.getenv("REPLAY_BUCKET", d.bucket),
            prefix=os.getenv("REPLAY_PREFIX", d.prefix),
            stream_name=os.getenv("REPLAY_STREAM", d.stream_name),
            speedup=_env_number("REPLAY_SPEEDUP", d.speedup, float),
            watermarks_enabled=_env_bool("REPLAY_WATERMARKS_ENABLED", d.watermarks_enabled),
            watermark_interval_ms=_env_number(
                "REPLAY_WATERMARK_INTERVAL_MS", d.watermark_interval_ms, int
            ),
            watermark_event_count=_env_number(
                "REPLAY_WATERMARK_EVENT_COUNT", d.watermark_event_count, int
            ),
            min_sleep_ms=_env_number("REPLAY_MIN_SLEEP_MS", d.min_sleep_ms, float),
            stats_interval_ms=_env_number("REPLAY_STATS_INTERVAL_MS", d.stats_interval_ms, int),
            timestamp_field=os.getenv("REPLAY_TIMESTAMP_FIELD", d.timestamp_field),
            record_max_buffered_time_ms=_env_number(
                "REPLAY_MAX_BUFFERED_TIME_MS", d.record_max_buffered_time_ms, int
            ),
            max_retries=_env_number("REPLAY_MAX_RETRIES", d.max_retries, int),
            endpoint_url=os.getenv("REPLAY_ENDPOINT_URL") or None,
            source_region=os.getenv("REPLAY_SOURCE_REGION", d.source_region),
        )

    def with_overrides(self, **overrides) -> "ReplayConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> "ReplayConfig":
        if not self.speedup > 0:
            raise ConfigError(f"speedup must be > 0, got {self.speedup}")
        if self.watermark_interval_ms <= 0:
            raise ConfigError("watermark_interval_ms must be > 0")
        if self.watermark_event_count <= 0:
            raise ConfigError("watermark_event_count must be > 0")
        if self.min_sleep_ms <= 0:
            raise ConfigError("min_sleep_ms must be > 0")
        if self.stats_interval_ms <= 0:
            raise ConfigError("stats_interval_ms must be > 0")
        if self.record_max_buffered_time_ms < 0:
            raise ConfigError("record_max_buffered_time_ms must be >= 0")
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0")
        if not self.stream_name:
            raise ConfigError("stream_name is required")
        return self
