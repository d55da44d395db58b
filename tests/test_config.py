"""Tests for configuration loading and validation."""

import logging
from datetime import time
from pathlib import Path
from typing import Any

import pytest

from thermobridge.config import Config, ConfigError, load_config
from thermobridge.retry import RetryPolicy


class TestFromDict:
    """Tests for Config.from_dict."""

    def test_minimal_config_uses_defaults(self, config_data: dict[str, Any]) -> None:
        """Test that optional settings fall back to their defaults."""
        config = Config.from_dict(config_data)
        assert config.desired_temperature == 23.5
        assert config.tolerance == 0.5
        assert config.poll_interval_seconds == 300
        assert config.adjustment_policy == "fixed"
        assert config.thermostat_device_id is None
        assert config.sensor_device_type == "awair"
        assert config.control_window is None

    def test_tick_timeout_defaults_to_poll_interval(
        self, config_data: dict[str, Any]
    ) -> None:
        """Test that the tick timeout follows the poll interval when unset."""
        config = Config.from_dict({**config_data, "poll_interval_seconds": 120})
        assert config.tick_timeout_seconds == 120

    def test_sensor_device_id_is_coerced_to_string(
        self, config_data: dict[str, Any]
    ) -> None:
        """Test that a numeric device id from TOML becomes a string."""
        config = Config.from_dict({**config_data, "sensor_device_id": 1234})
        assert config.sensor_device_id == "1234"

    @pytest.mark.parametrize(
        "missing", ["email", "password", "awair_token", "desired_temperature"]
    )
    def test_missing_required_key_raises(
        self, config_data: dict[str, Any], missing: str
    ) -> None:
        """Test that each required key is enforced."""
        del config_data[missing]
        with pytest.raises(ConfigError, match=missing):
            Config.from_dict(config_data)

    def test_unknown_key_raises(self, config_data: dict[str, Any]) -> None:
        """Test that misspelled keys are not silently ignored."""
        with pytest.raises(ConfigError, match="desired_temp"):
            Config.from_dict({**config_data, "desired_temp": 21})

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("email", "not-an-email"),
            ("desired_temperature", "warm"),
            ("tolerance", -1),
            ("step_size", 0),
            ("poll_interval_seconds", 0),
            ("adjustment_policy", "bang-bang"),
            ("retry_attempts", 50),
        ],
    )
    def test_invalid_value_raises(
        self, config_data: dict[str, Any], key: str, value: Any
    ) -> None:
        """Test that out-of-range or mistyped values are rejected."""
        with pytest.raises(ConfigError, match="Invalid configuration"):
            Config.from_dict({**config_data, key: value})

    def test_bounds_must_be_ordered(self, config_data: dict[str, Any]) -> None:
        """Test that the minimum setpoint must be below the maximum."""
        with pytest.raises(ConfigError, match="min_setpoint"):
            Config.from_dict({**config_data, "min_setpoint": 25, "max_setpoint": 20})

    def test_window_requires_both_ends(self, config_data: dict[str, Any]) -> None:
        """Test that a half-configured window is rejected."""
        with pytest.raises(ConfigError, match="set together"):
            Config.from_dict({**config_data, "control_start": "08:00"})

    def test_window_rejects_bad_time(self, config_data: dict[str, Any]) -> None:
        """Test that window bounds must be HH:MM."""
        with pytest.raises(ConfigError, match="control_start"):
            Config.from_dict(
                {**config_data, "control_start": "8am", "control_end": "13:00"}
            )

    def test_control_window_is_built(self, config_data: dict[str, Any]) -> None:
        """Test that configured bounds produce a ControlWindow."""
        config = Config.from_dict(
            {**config_data, "control_start": "23:00", "control_end": "07:00"}
        )
        window = config.control_window
        assert window is not None
        assert window.start == time(23, 0)
        assert window.wraps_midnight is True

    def test_retry_policy_reflects_settings(self, config_data: dict[str, Any]) -> None:
        """Test that the retry settings are exposed as a RetryPolicy."""
        config = Config.from_dict(
            {
                **config_data,
                "retry_attempts": 2,
                "retry_backoff_factor": 1.0,
                "retry_max_backoff_seconds": 5,
                "request_timeout_seconds": 4,
            }
        )
        assert config.retry_policy == RetryPolicy(
            attempts=2, backoff_factor=1.0, max_backoff=5.0, timeout=4.0
        )

    def test_retry_budget_above_interval_warns(
        self, config_data: dict[str, Any], caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a retry budget longer than the interval is reported."""
        with caplog.at_level(logging.WARNING):
            Config.from_dict({**config_data, "poll_interval_seconds": 30})
        assert "exceeds the poll interval" in caplog.text


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_reads_toml(self, tmp_path: Path) -> None:
        """Test that a TOML file is read and validated."""
        path = tmp_path / "thermobridge.toml"
        path.write_text(
            'email = "daikin@example.com"\n'
            'password = "secret"\n'
            'awair_token = "awair-token"\n'
            "sensor_device_id = 1234\n"
            "desired_temperature = 22.0\n"
            'adjustment_policy = "proportional"\n'
        )
        config = load_config(path)
        assert config.sensor_device_id == "1234"
        assert config.adjustment_policy == "proportional"

    def test_load_config_missing_file_raises(self, tmp_path: Path) -> None:
        """Test that a missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "missing.toml")

    def test_load_config_invalid_toml_raises(self, tmp_path: Path) -> None:
        """Test that a malformed file raises ConfigError."""
        path = tmp_path / "broken.toml"
        path.write_text("email = \n")
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_config(path)
