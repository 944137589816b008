"""Logging setup for the network attribute runner.

Library modules only create module loggers; handlers are attached here, once per
process, when the runner starts.
"""

import logging
import logging.handlers
import os
from pathlib import Path

from dotenv import load_dotenv
from pyprojroot import here

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _has_file_handler(logger: logging.Logger, path: Path) -> bool:
    return any(
        isinstance(handler, logging.handlers.RotatingFileHandler) and Path(handler.baseFilename) == path
        for handler in logger.handlers
    )


def setup_logging() -> logging.Logger:
    """Configures console and rotating file logging for network_runner

    Reads NETWORK_LOG_LEVEL, LOG_MAX_BYTES and LOG_BACKUP_COUNT from the environment
    (or a .env file at the project root). Calling it again does not add a second file
    handler.

    Returns
    -------
    logging.Logger
        The logger for this module
    """
    load_dotenv(here() / ".env")

    level = os.getenv("NETWORK_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    logger = logging.getLogger(__name__)
    logging.getLogger("pyogrio").setLevel(logging.WARNING)  # turning off pyogrio INFO logging

    root = logging.getLogger()
    log_file_path = here() / "logs/network_attributes.log"
    if _has_file_handler(root, log_file_path):
        return logger

    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=int(os.getenv("LOG_MAX_BYTES", 10485760)),
        backupCount=int(os.getenv("LOG_BACKUP_COUNT", 5)),
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(logging.DEBUG)
    root.addHandler(file_handler)
    return logger
