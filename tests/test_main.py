"""Tests for the CLI entry point."""

from __future__ import annotations

import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from x_intel_digest.__main__ import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    configure_logging,
    create_parser,
    main,
    print_config_summary,
    run_config_check,
    run_once,
    validate_config,
)
from x_intel_digest.config import Settings, clear_settings_cache
from x_intel_digest.crawler.models import FetchReport
from x_intel_digest.crawler.orchestrator import NoRecentPostsError
from x_intel_digest.notifier.models import BotConfigurationError, DeliveryError
from x_intel_digest.pipeline import PipelineResult

ONEBOT_ENV = {
    "X_ACCOUNTS": "alice,bob",
    "ONEBOT_API_URL": "http://127.0.0.1:3000",
    "ONEBOT_GROUP_ID": "123",
}


@pytest.fixture(autouse=True)
def clear_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


def make_settings(env: dict[str, str]) -> Settings:
    with patch.dict(os.environ, env, clear=True):
        return Settings(_env_file=None)


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_has_version(self):
        """Parser should have version flag."""
        parser = create_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_parser_config_check(self):
        """Parser should accept --config-check flag."""
        args = create_parser().parse_args(["--config-check"])
        assert args.config_check is True

    def test_parser_log_level(self):
        """Parser should accept --log-level option."""
        args = create_parser().parse_args(["--log-level", "DEBUG"])
        assert args.log_level == "DEBUG"

    def test_parser_dry_run_and_label(self):
        """Parser should accept --dry-run and --label."""
        args = create_parser().parse_args(["--dry-run", "--label", "SecIntel"])
        assert args.dry_run is True
        assert args.label == "SecIntel"

    def test_parser_default_values(self):
        """Parser should have correct defaults."""
        args = create_parser().parse_args([])
        assert args.config_check is False
        assert args.log_level is None
        assert args.dry_run is False
        assert args.label is None


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_logging_info(self):
        """Should configure logging at INFO level."""
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_debug(self):
        """Should configure logging at DEBUG level."""
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_http_loggers_quieted(self):
        """HTTP client libraries should log at WARNING."""
        configure_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING


class TestValidateConfig:
    """Tests for configuration validation."""

    def test_validate_config_success(self):
        """Should return settings on valid config."""
        with patch.dict(os.environ, ONEBOT_ENV, clear=True):
            settings = validate_config()
        assert settings is not None
        assert settings.onebot.group_id == 123

    def test_validate_config_failure(self, capsys):
        """Should return None on invalid config."""
        with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}, clear=True):
            settings = validate_config()
        assert settings is None

        captured = capsys.readouterr()
        assert "Configuration validation failed" in captured.err


class TestConfigSummary:
    """Tests for configuration summary output."""

    def test_summary_redacts_token(self, capsys):
        settings = make_settings({**ONEBOT_ENV, "ONEBOT_ACCESS_TOKEN": "hunter2"})

        print_config_summary(settings, dry_run=True)

        out = capsys.readouterr().out
        assert "Accounts: 2" in out
        assert "Dry Run: True" in out
        assert "hunter2" not in out


class TestRunConfigCheck:
    """Tests for run_config_check."""

    def test_configured(self, capsys):
        settings = make_settings(ONEBOT_ENV)
        assert run_config_check(settings) == EXIT_SUCCESS
        assert "Ready to run" in capsys.readouterr().out

    def test_onebot_not_configured(self, capsys):
        settings = make_settings({"X_ACCOUNTS": "alice"})
        assert run_config_check(settings) == EXIT_CONFIG_ERROR
        assert "not configured" in capsys.readouterr().out


class TestRunOnce:
    """Tests for run_once exit codes."""

    def run_with(self, result=None, side_effect=None, dry_run=False):
        settings = make_settings(ONEBOT_ENV)
        with patch("x_intel_digest.__main__.DigestPipeline") as mock_pipeline_class:
            mock_pipeline = MagicMock()
            if side_effect is not None:
                mock_pipeline.run.side_effect = side_effect
            else:
                mock_pipeline.run.return_value = result
            mock_pipeline_class.return_value = mock_pipeline
            code = run_once(settings, dry_run, label="L")
            mock_pipeline_class.assert_called_once_with(settings, dry_run=dry_run, label="L")
        return code

    def test_success(self):
        assert self.run_with(PipelineResult(digest="d")) == EXIT_SUCCESS

    def test_dry_run_prints_digest(self, capsys):
        assert self.run_with(PipelineResult(digest="the digest"), dry_run=True) == EXIT_SUCCESS
        assert "the digest" in capsys.readouterr().out

    def test_no_posts(self):
        result = PipelineResult(error=NoRecentPostsError(FetchReport()))
        assert self.run_with(result) == EXIT_ERROR

    def test_bot_not_configured(self):
        result = PipelineResult(error=BotConfigurationError("missing"))
        assert self.run_with(result) == EXIT_CONFIG_ERROR

    def test_delivery_failed(self):
        assert self.run_with(PipelineResult(error=DeliveryError("boom"))) == EXIT_ERROR

    def test_unexpected_exception(self):
        assert self.run_with(side_effect=RuntimeError("bug")) == EXIT_ERROR

    def test_interrupted(self):
        assert self.run_with(side_effect=KeyboardInterrupt) == EXIT_INTERRUPTED


class TestMain:
    """Tests for main entry point."""

    def test_main_config_check(self):
        """Should run config check and exit."""
        with patch.dict(os.environ, ONEBOT_ENV, clear=True):
            with pytest.raises(SystemExit) as exc_info:
                main(["--config-check"])
        assert exc_info.value.code == EXIT_SUCCESS

    def test_main_invalid_config(self):
        """Should exit with config error on invalid config."""
        with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}, clear=True):
            with pytest.raises(SystemExit) as exc_info:
                main([])
        assert exc_info.value.code == EXIT_CONFIG_ERROR

    def test_main_runs_once(self):
        """Should run one cycle with CLI overrides."""
        with (
            patch.dict(os.environ, ONEBOT_ENV, clear=True),
            patch("x_intel_digest.__main__.run_once", return_value=EXIT_SUCCESS) as mock_run,
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["--dry-run", "--label", "SecIntel"])

        assert exc_info.value.code == EXIT_SUCCESS
        args, kwargs = mock_run.call_args
        assert args[1] is True
        assert kwargs["label"] == "SecIntel"

    def test_main_dry_run_from_settings(self):
        """DRY_RUN in the environment should enable dry-run mode."""
        with (
            patch.dict(os.environ, {**ONEBOT_ENV, "DRY_RUN": "true"}, clear=True),
            patch("x_intel_digest.__main__.run_once", return_value=EXIT_SUCCESS) as mock_run,
        ):
            with pytest.raises(SystemExit):
                main([])

        assert mock_run.call_args.args[1] is True
