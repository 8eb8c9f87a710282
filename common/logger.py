import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from common.config import LoggingConfig

ROOT_LOGGER = "tallytrack"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Child of the tallytrack logger; handlers live on the root only."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(cfg: LoggingConfig) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    logger.propagate = False
    logger.setLevel(cfg.log_level)

    fmt = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    # Setup persistent handler
    file_handler_name = f"{ROOT_LOGGER}:file"
    if cfg.file_logging and not any(h.get_name() == file_handler_name for h in logger.handlers):
        log_dir = Path(cfg.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_dir / f"{ROOT_LOGGER}.log",
            maxBytes=cfg.max_bytes,
            backupCount=cfg.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(cfg.log_level)
        file_handler.setFormatter(fmt)
        file_handler.set_name(file_handler_name)
        logger.addHandler(file_handler)

    # Setup console handler
    console_handler_name = f"{ROOT_LOGGER}:console"
    if cfg.console_logging and not any(h.get_name() == console_handler_name for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(cfg.log_level)
        console_handler.setFormatter(fmt)
        console_handler.set_name(console_handler_name)
        logger.addHandler(console_handler)

    return logger
