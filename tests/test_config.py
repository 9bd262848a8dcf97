"""Tests for settings, window boundaries and logging setup."""

import json

import pytest
import structlog

from betmetrics.clock import DAY_MS, WINDOW_DAYS, now_ms, window_start
from betmetrics.config import MetricsConfig, Settings
from betmetrics.logging import add_service_name, add_timestamp, configure_logging, create_run_logger
from betmetrics.models.schemas import MetricsWindow


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("BETMETRICS_ELASTICITY_TRADE_SIZE", raising=False)
        monkeypatch.delenv("BETMETRICS_LOG_LEVEL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.log_level == "INFO"
        assert settings.elasticity_trade_size == 50.0

    def test_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("BETMETRICS_ELASTICITY_TRADE_SIZE", "25")
        monkeypatch.setenv("BETMETRICS_LOG_JSON", "false")

        settings = Settings(_env_file=None)

        assert settings.elasticity_trade_size == 25.0
        assert settings.log_json is False
        assert settings.get_metrics_config().elasticity_trade_size == 25.0

    def test_metrics_config_windows(self) -> None:
        assert MetricsConfig().window_days == {"day": 1, "week": 7, "month": 30}

    def test_metrics_config_windows_follow_clock(self) -> None:
        config = MetricsConfig()
        assert config.window_days == WINDOW_DAYS
        # Each config gets its own copy
        config.window_days["day"] = 2
        assert WINDOW_DAYS["day"] == 1


class TestWindowStart:
    """Tests for window_start."""

    @pytest.mark.parametrize(
        ("window", "days"),
        [(MetricsWindow.DAY, 1), (MetricsWindow.WEEK, 7), (MetricsWindow.MONTH, 30), ("week", 7)],
    )
    def test_window_lengths(self, now, window, days) -> None:
        assert window_start(now, window) == now - days * DAY_MS

    def test_custom_lengths(self, now) -> None:
        assert window_start(now, "month", {"day": 1, "week": 7, "month": 28}) == now - 28 * DAY_MS

    def test_invalid_window(self, now) -> None:
        with pytest.raises(ValueError, match="Invalid window"):
            window_start(now, "year")

    def test_now_ms_is_epoch_milliseconds(self) -> None:
        assert now_ms() > 1_600_000_000_000


class TestLogging:
    """Tests for structlog setup."""

    def test_processors_add_fields(self) -> None:
        event = add_service_name(None, "info", add_timestamp(None, "info", {"event": "x"}))

        assert event["service"] == "betmetrics"
        assert "T" in event["timestamp"]

    def test_run_logger_binds_context(self, capsys) -> None:
        saved = structlog.get_config()
        configure_logging(log_level="INFO", json_output=True)
        try:
            create_run_logger(run_id="run-1", operation="metrics_update").info("metrics_update_completed")
            line = capsys.readouterr().out.strip().splitlines()[-1]
        finally:
            structlog.configure(**saved)

        payload = json.loads(line)
        assert payload["event"] == "metrics_update_completed"
        assert payload["run_id"] == "run-1"
        assert payload["operation"] == "metrics_update"
        assert payload["level"] == "info"

    def test_level_filters_run_logger(self, capsys) -> None:
        saved = structlog.get_config()
        configure_logging(log_level="warning", json_output=True)
        try:
            run_logger = create_run_logger(run_id="run-2", operation="metrics_update")
            run_logger.info("metrics_update_completed")
            run_logger.warning("metrics_update_slow")
            lines = capsys.readouterr().out.strip().splitlines()
        finally:
            structlog.configure(**saved)

        events = [json.loads(line)["event"] for line in lines]
        assert events == ["metrics_update_slow"]
