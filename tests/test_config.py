"""Tests for environment configuration and logging setup."""

import logging

import pytest
import structlog

from pos_engine.config import EngineConfig, configure_logging, get_engine_config
from pos_engine.errors import ConfigError, ValidationError


class TestGetEngineConfig:
    """Tests for get_engine_config."""

    def test_defaults(self) -> None:
        """An empty environment gives the documented defaults."""
        config = get_engine_config({})

        assert config == EngineConfig()
        assert config.branch_id == "B001"
        assert config.terminal_id == "T01"
        assert config.top_selling_limit == 5
        assert config.star_points_divisor == 200
        assert config.log_level == "info"
        assert config.log_format == "json"
        assert config.tz is None

    def test_reads_environment(self) -> None:
        """Every variable is picked up."""
        config = get_engine_config(
            {
                "POS_BRANCH_ID": "B007",
                "POS_TERMINAL_ID": "T03",
                "POS_TOP_SELLING_LIMIT": "10",
                "POS_STAR_POINTS_DIVISOR": "100",
                "POS_LOG_LEVEL": "DEBUG",
                "POS_LOG_FORMAT": "console",
            }
        )

        assert config.branch_id == "B007"
        assert config.terminal_id == "T03"
        assert config.top_selling_limit == 10
        assert config.star_points_divisor == 100
        assert config.log_level == "debug"
        assert config.log_format == "console"

    def test_blank_values_fall_back_to_defaults(self) -> None:
        """Empty strings are treated as unset."""
        config = get_engine_config({"POS_BRANCH_ID": " ", "POS_TOP_SELLING_LIMIT": ""})

        assert config.branch_id == "B001"
        assert config.top_selling_limit == 5

    @pytest.mark.parametrize("value", ["abc", "0", "-3", "2.5"])
    def test_bad_integer(self, value) -> None:
        """Non-positive or non-integer limits raise ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            get_engine_config({"POS_TOP_SELLING_LIMIT": value})

        assert exc_info.value.name == "POS_TOP_SELLING_LIMIT"
        assert isinstance(exc_info.value, ValidationError)

    def test_bad_log_level(self) -> None:
        """Unknown log levels are rejected."""
        with pytest.raises(ConfigError, match="POS_LOG_LEVEL"):
            get_engine_config({"POS_LOG_LEVEL": "verbose"})

    def test_bad_log_format(self) -> None:
        """Only json and console are accepted."""
        with pytest.raises(ConfigError, match="POS_LOG_FORMAT"):
            get_engine_config({"POS_LOG_FORMAT": "xml"})

    def test_unknown_timezone(self) -> None:
        """An unknown zone fails at load time."""
        with pytest.raises(ConfigError, match="POS_TIMEZONE"):
            get_engine_config({"POS_TIMEZONE": "Nowhere/Atlantis"})


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def _reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_json_output(self, capsys) -> None:
        """JSON lines carry the event, level and timestamp."""
        configure_logging("info", "json")

        structlog.get_logger("test").info("item_added", item_code="MED001")

        out = capsys.readouterr().out
        assert '"event": "item_added"' in out
        assert '"level": "info"' in out
        assert '"item_code": "MED001"' in out
        assert '"timestamp"' in out

    def test_level_filter(self, capsys) -> None:
        """Events below the configured level are dropped."""
        configure_logging("warning", "json")

        log = structlog.get_logger("test")
        log.info("quiet")
        log.warning("loud")

        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out

    def test_wrapper_uses_configured_level(self) -> None:
        """The filtering bound logger is built for the requested level."""
        configure_logging("error", "console")

        wrapper = structlog.get_config()["wrapper_class"]
        assert wrapper is structlog.make_filtering_bound_logger(logging.ERROR)
