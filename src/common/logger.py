"""Logging for the metastore authorization engine.

Every engine logger lives under the ``metastore_authz`` namespace, so one
``setup_logger`` call at service start configures the policy store, the
evaluator and the catalog binding together. Records carry ISO 8601
timestamps and the component name.
"""

import logging
import logging.handlers
import os

ROOT_LOGGER_NAME = "metastore_authz"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_level(level: str) -> int:
    name = level.upper()
    if name not in LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LEVELS)}")
    return getattr(logging, name)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_dir: str = "/var/log/metastore-authz",
    level: str = "INFO",
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the engine logger.

    Calling it again only updates the level; handlers are attached once.

    Args:
        name: Logger name (the engine namespace by default)
        log_dir: Directory for the rotating ``<name>.log`` file
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL
        file_logging: Write to a rotating file under ``log_dir``
        console_logging: Write to stderr
        max_bytes: File size that triggers rotation
        backup_count: Rotated files to keep

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(level))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = []

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                os.path.join(log_dir, f"{name}.log"),
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        )

    if console_logging:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Component logger under the engine namespace (e.g. ``policy_evaluator``)."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
