"""
Power monitor configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
A single Settings instance is built at startup and handed to every component
that needs it; nothing reads the environment after that.

CHANGELOG:
- 2026-10-08: Add restart delays and failure threshold (STORY-011)
- 2026-10-02: Initial creation (STORY-001)

TODO:
- None
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration for the power monitor.

    Required variables must be set; optional variables have defaults that
    match the device vendor's guidance and the dashboard's expectations.

    Attributes:
        tuya_client_id: Tuya cloud project access ID.
        tuya_client_secret: Tuya cloud project access secret.
        tuya_api_region: Tuya OpenAPI host label (``tuyaeu``, ``tuyaus``...).
        tuya_device_id: Identifier of the monitored smart plug.
        database_url: SQLAlchemy async URL for the telemetry store.
        redis_url: Redis URL for the chart cache. Caching is off when unset.
        cache_ttl_s: Chart cache TTL in seconds.
        poll_interval_s: Seconds between poll ticks.
        fetch_timeout_s: Timeout for one provider status fetch.
        store_write_timeout_s: Timeout for one sample append.
        failure_threshold: Consecutive failed ticks that force a restart.
        failure_restart_delay_s: Grace delay before a forced restart.
        manual_restart_delay_s: Grace delay before an administrative restart.
        default_timezone: Zone used when a request names none.
        broadcast_send_timeout_s: Per-observer send timeout for live pushes.
        host: Bind address for the HTTP server.
        port: Bind port for the HTTP server.
        log_level: Root log level.
    """

    tuya_client_id: str
    tuya_client_secret: str
    tuya_api_region: str = "tuyaeu"
    tuya_device_id: str
    database_url: str = "sqlite+aiosqlite:///./telemetry.db"
    redis_url: str | None = None
    cache_ttl_s: int = 5
    poll_interval_s: float = 5.0
    fetch_timeout_s: float = 10.0
    store_write_timeout_s: float = 5.0
    failure_threshold: int = 40
    failure_restart_delay_s: float = 10.0
    manual_restart_delay_s: float = 5.0
    default_timezone: str = "Asia/Dhaka"
    broadcast_send_timeout_s: float = 1.0
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    @field_validator(
        "poll_interval_s",
        "fetch_timeout_s",
        "store_write_timeout_s",
        "broadcast_send_timeout_s",
    )
    @classmethod
    def interval_must_be_positive(cls, v: float) -> float:
        """Reject zero or negative intervals and timeouts."""
        if v <= 0:
            raise ValueError("intervals and timeouts must be > 0")
        return v

    @field_validator("failure_restart_delay_s", "manual_restart_delay_s", "cache_ttl_s")
    @classmethod
    def delay_must_be_non_negative(cls, v: float) -> float:
        """Reject negative delays."""
        if v < 0:
            raise ValueError("delays must be >= 0")
        return v

    @field_validator("failure_threshold")
    @classmethod
    def failure_threshold_must_be_positive(cls, v: int) -> int:
        """A threshold below 1 would restart on the very first tick."""
        if v < 1:
            raise ValueError("FAILURE_THRESHOLD must be >= 1")
        return v

    @field_validator("port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
