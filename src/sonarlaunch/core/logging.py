from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Levels understood by the scanner engine, mapped onto stdlib logging levels.
ENGINE_LEVELS = {
    "TRACE": logging.DEBUG,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def resolve_level(*, debug: bool = False, quiet: bool = False) -> int:
    """Pick a stdlib logging level from CLI flags.

    Precedence:
    - quiet → ERROR
    - debug → DEBUG
    - default → INFO
    """

    if quiet:
        return logging.ERROR
    if debug:
        return logging.DEBUG
    return logging.INFO


def configure_logging(*, debug: bool = False, quiet: bool = False) -> int:
    """Configure root logging level based on CLI flags.

    Returns:
        The level that was applied.
    """

    level = resolve_level(debug=debug, quiet=quiet)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return level


def engine_level_name(level: int) -> str:
    """Translate a stdlib level into the name the scanner engine expects."""

    if level <= logging.DEBUG:
        return "DEBUG"
    if level <= logging.INFO:
        return "INFO"
    if level <= logging.WARNING:
        return "WARN"
    return "ERROR"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-level logger."""

    return logging.getLogger(name if name is not None else __name__)
