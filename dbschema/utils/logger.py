"""
Logger setup shared by all dbschema components
"""

import logging
import os
from typing import Union

ROOT_LOGGER = "dbschema"
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _setup_root_logger() -> logging.Logger:
    """Attach a stream handler to the package logger once"""
    logger = logging.getLogger(ROOT_LOGGER)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(os.getenv("DBSCHEMA_LOG_LEVEL", "INFO").upper())

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a dbschema module, e.g. get_logger(__name__)"""
    _setup_root_logger()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_level(level: Union[str, int]) -> None:
    if isinstance(level, str):
        level = level.upper()
    _setup_root_logger().setLevel(level)
