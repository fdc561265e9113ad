"""
Tests for Settings loading and validation.

CHANGELOG:
- 2026-10-08: Add threshold and delay validation tests (STORY-011)
- 2026-10-02: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from plug_monitor.config import Settings

REQUIRED = {
    "TUYA_CLIENT_ID": "env-client-id",
    "TUYA_CLIENT_SECRET": "env-client-secret",
    "TUYA_DEVICE_ID": "env-device",
}


def _set_required(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in REQUIRED.items():
        monkeypatch.setenv(key, value)


class TestLoading:
    """Environment and .env loading."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _set_required(monkeypatch)

        settings = Settings()

        assert settings.tuya_client_id == "env-client-id"
        assert settings.tuya_api_region == "tuyaeu"
        assert settings.poll_interval_s == 5.0
        assert settings.failure_threshold == 40
        assert settings.failure_restart_delay_s == 10.0
        assert settings.manual_restart_delay_s == 5.0
        assert settings.default_timezone == "Asia/Dhaka"
        assert settings.redis_url is None
        assert settings.port == 5000

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _set_required(monkeypatch)
        monkeypatch.setenv("POLL_INTERVAL_S", "2.5")
        monkeypatch.setenv("FAILURE_THRESHOLD", "3")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")

        settings = Settings()

        assert settings.poll_interval_s == 2.5
        assert settings.failure_threshold == 3
        assert settings.redis_url == "redis://cache:6379/0"

    def test_dotenv_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text(
            "TUYA_CLIENT_ID=file-id\nTUYA_CLIENT_SECRET=file-secret\nTUYA_DEVICE_ID=file-dev\n"
        )

        settings = Settings()

        assert settings.tuya_device_id == "file-dev"

    def test_missing_required_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings()


class TestValidation:
    """Field validators."""

    @pytest.mark.parametrize(
        ("var", "value"),
        [
            ("POLL_INTERVAL_S", "0"),
            ("FETCH_TIMEOUT_S", "-1"),
            ("FAILURE_THRESHOLD", "0"),
            ("FAILURE_RESTART_DELAY_S", "-5"),
            ("PORT", "70000"),
        ],
    )
    def test_invalid_values_rejected(
        self, monkeypatch: pytest.MonkeyPatch, var: str, value: str
    ) -> None:
        _set_required(monkeypatch)
        monkeypatch.setenv(var, value)

        with pytest.raises(ValidationError):
            Settings()

    def test_zero_restart_delay_allowed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _set_required(monkeypatch)
        monkeypatch.setenv("MANUAL_RESTART_DELAY_S", "0")

        assert Settings().manual_restart_delay_s == 0
