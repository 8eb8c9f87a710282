import json
import logging

import pytest

from common.config import ConfigurationError, LoggingConfig, load_config
from common.logger import ROOT_LOGGER, configure_logging, get_logger


def test_defaults():
    cfg = load_config(environ={})
    assert cfg.db.path == "tallytrack.db"
    assert cfg.poller.refresh_interval_ms == 5000
    assert cfg.poller.tick_interval_ms == 1000


def test_env_overrides(tmp_path):
    cfg = load_config(
        environ={
            "TALLYTRACK_DB_PATH": str(tmp_path / "t.db"),
            "TALLYTRACK_API_PORT": "9001",
            "TALLYTRACK_API_CORS_ORIGINS": "http://a, http://b",
            "TALLYTRACK_LOGGING_CONSOLE_LOGGING": "false",
            "TALLYTRACK_LOGGING_LOG_LEVEL": "debug",
        }
    )
    assert cfg.db.path.endswith("t.db")
    assert cfg.api.port == 9001
    assert cfg.api.cors_origins == ["http://a", "http://b"]
    assert cfg.logging.console_logging is False
    assert cfg.logging.log_level == "DEBUG"


def test_file_then_env(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"api": {"port": 8100}, "poller": {"tick_interval_ms": 500}}))

    cfg = load_config(str(path), environ={"TALLYTRACK_API_PORT": "8200"})

    assert cfg.api.port == 8200
    assert cfg.poller.tick_interval_ms == 500


@pytest.mark.parametrize(
    "environ",
    [
        {"TALLYTRACK_API_PORT": "70000"},
        {"TALLYTRACK_API_PORT": "eighty"},
        {"TALLYTRACK_LOGGING_LOG_LEVEL": "LOUD"},
        {"TALLYTRACK_POLLER_REFRESH_INTERVAL_MS": "0"},
    ],
)
def test_invalid_values(environ):
    with pytest.raises(ConfigurationError):
        load_config(environ=environ)


def test_unknown_section(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"metrics": {}}))
    with pytest.raises(ConfigurationError):
        load_config(str(path), environ={})


def test_configure_logging_is_idempotent(tmp_path):
    cfg = LoggingConfig(log_dir=str(tmp_path / "logs"), console_logging=False)
    logger = configure_logging(cfg)
    configure_logging(cfg)
    try:
        names = [h.get_name() for h in logger.handlers]
        assert names.count(f"{ROOT_LOGGER}:file") == 1
        get_logger("test").info("hello")
        for h in logger.handlers:
            h.flush()
        assert "hello" in (tmp_path / "logs" / f"{ROOT_LOGGER}.log").read_text()
    finally:
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
