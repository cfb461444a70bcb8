"""
Logging Configuration
=====================

All buildmanifest modules log below the ``buildmanifest`` logger, which
writes to stderr so rendered manifests on stdout stay clean JSON.

What is logged where:
- pipeline registration and each serialization phase: DEBUG
  (core.manifest, core.pipeline)
- loaded configuration files and built manifests: INFO
  (core.config, core.definition)
- unreadable config files and template rendering problems: WARNING

The CLI sets the level from ``[logging] level`` in the configuration, or to
DEBUG with ``--verbose``. At DEBUG the line number of the call is added to
every record.

Usage:
    from buildmanifest.core.logger import get_logger

    logger = get_logger(__name__)
    logger.debug(f"Registered {pipeline.kind} pipeline {pipeline.name}")
"""

import logging
import sys
from typing import Union

PACKAGE_NAME = "buildmanifest"
DEFAULT_LEVEL = logging.WARNING
LOG_FORMAT = "%(levelname)s - %(name)s - %(message)s"
DEBUG_FORMAT = "%(levelname)s - %(name)s:%(lineno)d - %(message)s"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a buildmanifest module.

    Args:
        name: The module name (typically __name__)

    Returns:
        Logger below the package logger
    """
    _ensure_configured()
    return logging.getLogger(name)


def _package_logger() -> logging.Logger:
    return logging.getLogger(PACKAGE_NAME)


def _ensure_configured() -> None:
    global _configured
    if _configured:
        return

    logger = _package_logger()
    logger.setLevel(DEFAULT_LEVEL)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.propagate = False
    _configured = True


def resolve_level(level: Union[int, str]) -> int:
    """
    Turn a level name from the configuration or a level number into a number.

    Args:
        level: Level name in any case ("debug", "WARNING") or number

    Returns:
        Numeric logging level

    Raises:
        ValueError: If the name is not a logging level
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level}")
    return resolved


def set_level(level: Union[int, str]) -> None:
    """
    Set the level of the package logger.

    Args:
        level: Level name or number, see resolve_level()
    """
    _ensure_configured()
    resolved = resolve_level(level)
    logger = _package_logger()
    logger.setLevel(resolved)

    fmt = DEBUG_FORMAT if resolved <= logging.DEBUG else LOG_FORMAT
    for handler in logger.handlers:
        handler.setFormatter(logging.Formatter(fmt))
