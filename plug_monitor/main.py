"""
Entrypoint for the smart-plug power monitor.

Loads Settings once, configures structured JSON logging, logs a config
summary with secrets masked, and serves the FastAPI app (HTTP + WebSocket)
with uvicorn. The polling loop runs inside the app's lifespan.

Exit statuses: 0 after a manual restart request, 1 after sustained polling
failure. Both expect an external process manager to start the service again.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-017)

TODO:
- None
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from datetime import UTC, datetime

import uvicorn

from plug_monitor.api.main import create_app
from plug_monitor.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger (stderr)."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())


def masked_secret(value: str | None) -> str:
    """Return a short non-reversible fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def log_config_summary(settings: Settings) -> None:
    """Log the effective configuration at startup, masking secrets."""
    logger.info(
        "Power monitor starting with config: "
        "device_id=%s, tuya_api_region=%s, tuya_client_id=%s, "
        "tuya_client_secret=%s, poll_interval_s=%s, fetch_timeout_s=%s, "
        "failure_threshold=%s, failure_restart_delay_s=%s, "
        "default_timezone=%s, redis_enabled=%s, host=%s, port=%s",
        settings.tuya_device_id,
        settings.tuya_api_region,
        settings.tuya_client_id,
        masked_secret(settings.tuya_client_secret),
        settings.poll_interval_s,
        settings.fetch_timeout_s,
        settings.failure_threshold,
        settings.failure_restart_delay_s,
        settings.default_timezone,
        bool(settings.redis_url),
        settings.host,
        settings.port,
    )


def main() -> None:
    """Synchronous entrypoint: load settings and serve the app."""
    settings = Settings()
    configure_logging(settings.log_level)
    log_config_summary(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
