import logging
from unittest.mock import Mock
from unittest.mock import patch

import pytest

from geogate.logging_config import LOG_FORMAT
from geogate.logging_config import RequestContextFilter
from geogate.logging_config import setup_loki_logging
from geogate.services.ray_id_service import ray_id_context


@pytest.fixture
def mock_config():
    config = Mock()
    config.log_level = "INFO"
    config.loki_enabled = False
    config.loki_url = ""
    config.environment = "test"
    return config


def make_record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg="Test message",
        args=(),
        exc_info=None,
    )


def test_context_filter_adds_ray_id_when_missing():
    record = make_record()

    assert RequestContextFilter().filter(record) is True
    assert record.ray_id == "no-ray-id"


def test_context_filter_reads_context_var():
    token = ray_id_context.set("0123456789abcdef")
    try:
        record = make_record()
        RequestContextFilter().filter(record)
    finally:
        ray_id_context.reset(token)

    assert record.ray_id == "0123456789abcdef"


def test_context_filter_preserves_existing_ray_id():
    record = make_record()
    record.ray_id = "a1b2c3d4e5f67890"

    RequestContextFilter().filter(record)

    assert record.ray_id == "a1b2c3d4e5f67890"


def test_context_filter_makes_format_string_safe():
    record = make_record()
    RequestContextFilter().filter(record)

    formatted = logging.Formatter(LOG_FORMAT).format(record)

    assert "[no-ray-id] - test - INFO - Test message" in formatted
    assert formatted.endswith("Test message")


def test_context_filter_renders_bound_location():
    record = make_record()
    record.client_ip = "115.240.90.163"
    record.country = "India"
    record.city = "Mumbai"

    RequestContextFilter().filter(record)

    assert record.geo_context == " {client_ip=115.240.90.163 country=India city=Mumbai}"
    assert logging.Formatter(LOG_FORMAT).format(record).endswith(
        "Test message {client_ip=115.240.90.163 country=India city=Mumbai}"
    )


def test_context_filter_renders_partial_location():
    record = make_record()
    record.client_ip = "203.0.113.0"

    RequestContextFilter().filter(record)

    assert record.geo_context == " {client_ip=203.0.113.0}"


def test_setup_loki_logging_returns_logger(mock_config):
    logger = setup_loki_logging(mock_config, "test_service")

    assert isinstance(logger, logging.Logger)
    assert logger.name == "test_service"


def test_setup_loki_logging_parses_log_level(mock_config):
    mock_config.log_level = "DEBUG"

    setup_loki_logging(mock_config, "test_service")

    assert logging.getLogger().level == logging.DEBUG


def test_setup_loki_logging_without_loki(mock_config):
    with patch("geogate.logging_config.LokiLoggerHandler") as loki_handler:
        setup_loki_logging(mock_config, "test_service")

    loki_handler.assert_not_called()
    assert len(logging.getLogger().handlers) >= 1


def test_setup_loki_logging_with_loki(mock_config):
    mock_config.loki_enabled = True
    mock_config.loki_url = "http://loki:3100/loki/api/v1/push"

    with patch("geogate.logging_config.LokiLoggerHandler") as loki_handler:
        loki_handler.return_value = logging.NullHandler()
        setup_loki_logging(mock_config, "geogate")

    loki_handler.assert_called_once()
    kwargs = loki_handler.call_args.kwargs
    assert kwargs["url"] == "http://loki:3100/loki/api/v1/push"
    assert kwargs["labels"]["service"] == "geogate"
    assert kwargs["labels"]["environment"] == "test"
