import logging

from backend.battlelog.logging_config import setup_logging


def test_setup_logging_is_idempotent_and_quiets_sql(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.delenv("SQL_ECHO", raising=False)
    setup_logging()
    setup_logging()
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_unknown_log_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    monkeypatch.setenv("SQL_ECHO", "1")
    setup_logging()
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
