"""Tests for config and logging."""

import json
import logging
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from bto_alloc.config import (
    BtoConfig,
    EligibilityConfig,
    EventConfig,
    KafkaConfig,
    ScenarioConfig,
    StorageConfig,
)
from bto_alloc.exceptions import ConfigurationError
from bto_alloc.logging import JsonFormatter, get_logger, setup_logging

ENV_VARS = [
    "BTO_DATA_DIR",
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_ACKS",
    "EVENT_SINKS",
    "TOPIC_PREFIX",
    "OUTPUT_DIR",
    "PRETTY_JSON",
    "SEED",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env():
    """Environment without any bto-alloc variables."""
    env = {k: v for k, v in os.environ.items() if k not in ENV_VARS}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def restore_root_logger():
    """Put back root handlers and levels changed by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    package_level = logging.getLogger("bto_alloc").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("bto_alloc").setLevel(package_level)


class TestKafkaConfig:
    """Tests for KafkaConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = KafkaConfig()

        assert config.bootstrap_servers == "localhost:9092"
        assert config.acks == "all"
        assert config.compression == "snappy"

    def test_to_dict(self) -> None:
        """Test conversion to confluent-kafka config dict."""
        result = KafkaConfig(bootstrap_servers="kafka:9092", acks="1").to_dict()

        assert result == {
            "bootstrap.servers": "kafka:9092",
            "acks": "1",
            "batch.size": 16384,
            "linger.ms": 5,
            "compression.type": "snappy",
            "retries": 3,
        }


class TestStorageConfig:
    """Tests for StorageConfig."""

    def test_default_values(self) -> None:
        """Test default data directory and date format."""
        config = StorageConfig()

        assert config.data_dir == Path("data")
        assert config.date_format == "%d/%m/%Y"


class TestEventConfig:
    """Tests for EventConfig."""

    def test_default_values(self) -> None:
        """Test events are not published by default."""
        config = EventConfig()

        assert config.sinks == ()
        assert config.topic_prefix == "dev.bto"
        assert config.pretty_json is False

    def test_topic(self) -> None:
        """Test topic names combine prefix and entity."""
        assert EventConfig(topic_prefix="prod.bto").topic("application") == "prod.bto.application"

    def test_unknown_sink_rejected(self) -> None:
        """Test unknown sink names raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="postgres"):
            EventConfig(sinks=("console", "postgres"))


class TestEligibilityConfig:
    """Tests for EligibilityConfig."""

    def test_default_values(self) -> None:
        """Test default age thresholds."""
        config = EligibilityConfig()

        assert config.single_min_age == 35
        assert config.married_min_age == 21

    def test_negative_age_rejected(self) -> None:
        """Test negative thresholds raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            EligibilityConfig(single_min_age=-1)


class TestScenarioConfig:
    """Tests for ScenarioConfig."""

    def test_default_values(self) -> None:
        """Test default scenario configuration."""
        config = ScenarioConfig()

        assert config.name == "launch"
        assert config.num_projects == 3
        assert 0 <= config.withdrawal_rate <= 1

    def test_bto_config_has_no_scenario_by_default(self) -> None:
        """Test the main config leaves the scenario unset."""
        assert BtoConfig().scenario is None


class TestBtoConfig:
    """Tests for BtoConfig."""

    def test_from_env_default(self, clean_env: None) -> None:
        """Test creating config from environment with defaults."""
        config = BtoConfig.from_env()

        assert config.storage.data_dir == Path("data")
        assert config.kafka.bootstrap_servers == "localhost:9092"
        assert config.events.sinks == ()
        assert config.seed is None
        assert config.log_level == "INFO"

    def test_from_env_custom(self, clean_env: None) -> None:
        """Test creating config from custom environment variables."""
        env_vars = {
            "BTO_DATA_DIR": "/srv/bto",
            "KAFKA_BOOTSTRAP_SERVERS": "kafka-cluster:9092",
            "EVENT_SINKS": "console, kafka",
            "TOPIC_PREFIX": "prod.bto",
            "OUTPUT_DIR": "/tmp/events",
            "PRETTY_JSON": "true",
            "SEED": "123",
            "LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars):
            config = BtoConfig.from_env()

        assert config.storage.data_dir == Path("/srv/bto")
        assert config.kafka.bootstrap_servers == "kafka-cluster:9092"
        assert config.events.sinks == ("console", "kafka")
        assert config.events.topic_prefix == "prod.bto"
        assert config.events.output_dir == Path("/tmp/events")
        assert config.events.pretty_json is True
        assert config.seed == 123
        assert config.log_level == "DEBUG"

    def test_from_env_bad_seed(self, clean_env: None) -> None:
        """Test a non-numeric seed raises ConfigurationError."""
        with patch.dict(os.environ, {"SEED": "abc"}):
            with pytest.raises(ConfigurationError, match="SEED"):
                BtoConfig.from_env()

    def test_from_env_unknown_sink(self, clean_env: None) -> None:
        """Test unknown sinks in the environment are rejected."""
        with patch.dict(os.environ, {"EVENT_SINKS": "kafka,smtp"}):
            with pytest.raises(ConfigurationError):
                BtoConfig.from_env()


@pytest.mark.usefixtures("restore_root_logger")
class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self) -> None:
        """Test default logging setup."""
        setup_logging()

        assert logging.getLogger("bto_alloc").level == logging.INFO

    def test_setup_logging_debug(self) -> None:
        """Test debug level logging setup."""
        setup_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level(self) -> None:
        """Test logging with invalid level defaults to INFO."""
        setup_logging(level="INVALID")

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_json_format(self) -> None:
        """Test JSON format logging."""
        setup_logging(format_type="json")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JsonFormatter)

    def test_setup_logging_replaces_handlers(self) -> None:
        """Test that setup_logging replaces existing handlers."""
        root = logging.getLogger()
        root.addHandler(logging.StreamHandler())
        root.addHandler(logging.StreamHandler())

        setup_logging()

        assert len(root.handlers) == 1

    def test_external_loggers_quieted(self) -> None:
        """Test that external library loggers are quieted."""
        setup_logging(level="DEBUG")

        assert logging.getLogger("confluent_kafka").level == logging.WARNING
        assert logging.getLogger("faker").level == logging.WARNING


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, **kwargs) -> logging.LogRecord:
        defaults = dict(
            name="bto_alloc.engine.coordinator",
            level=logging.INFO,
            pathname=__file__,
            lineno=42,
            msg="%s applied for %s",
            args=("S8500001D", "P1"),
            exc_info=None,
        )
        defaults.update(kwargs)
        return logging.LogRecord(**defaults)

    def test_format_basic(self) -> None:
        """Test basic log formatting with arguments merged."""
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "bto_alloc.engine.coordinator"
        assert data["message"] == "S8500001D applied for P1"
        assert "timestamp" in data

    def test_format_with_exception(self) -> None:
        """Test formatting with exception info."""
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(
            JsonFormatter().format(self._record(level=logging.ERROR, msg="failed", args=(), exc_info=exc_info))
        )

        assert data["level"] == "ERROR"
        assert "ValueError" in data["exception"]

    def test_format_with_extra(self) -> None:
        """Test workflow fields are merged into the output."""
        record = self._record()
        record.extra = {"application_id": "APP00001", "status": "PENDING"}

        data = json.loads(JsonFormatter().format(record))

        assert data["application_id"] == "APP00001"
        assert data["status"] == "PENDING"


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger(self) -> None:
        """Test getting a named logger."""
        logger = get_logger("bto_alloc.test")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "bto_alloc.test"

    def test_get_logger_same_instance(self) -> None:
        """Test getting the same logger returns the same instance."""
        assert get_logger("bto_alloc.same") is get_logger("bto_alloc.same")
