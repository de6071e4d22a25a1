"""
Logger configuration tests.

Run with: pytest tests/unit/test_logging_config.py -v
"""

import logging

from config.settings import Settings
from utils.logging_config import configure_logging, get_logger


def test_logger_defaults_to_env_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    logger = get_logger("itfm.test.env_level")
    assert logger.level == logging.WARNING
    assert logger.propagate is False


def test_configure_logging_applies_to_existing_loggers(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    logger = get_logger("itfm.test.configured")
    assert logger.level == logging.INFO

    configure_logging("debug")

    assert logger.level == logging.DEBUG
    configure_logging("INFO")


def test_build_services_applies_settings_log_level(monkeypatch):
    from handlers import common
    from repositories import postgres_repo

    monkeypatch.setattr(postgres_repo, "_engine", None)
    handler_logger = get_logger("handlers.common")
    settings = Settings(
        database_url="sqlite+pysqlite:///:memory:",
        aws_region="eu-west-2",
        log_level="ERROR",
    )

    common.build_services(settings)

    assert handler_logger.level == logging.ERROR
    configure_logging("INFO")
