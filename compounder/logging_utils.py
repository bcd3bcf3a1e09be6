"""Shared logging helpers for the compounder daemon."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional

LOG_DIR = Path("logs")
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def ensure_log_dir(log_dir: Path = LOG_DIR) -> Path:
    """Ensure the logs directory exists."""
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def has_rotating_handler(logger: logging.Logger, filename: str) -> bool:
    """Check if the logger already has a RotatingFileHandler for the given file."""
    return any(
        isinstance(handler, RotatingFileHandler)
        and Path(handler.baseFilename).name == filename
        for handler in logger.handlers
    )


def add_rotating_handler(
    logger: logging.Logger,
    filename: str,
    level: int = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    max_bytes: int = 5_000_000,
    backup_count: int = 7,
    log_dir: Path = LOG_DIR,
) -> RotatingFileHandler:
    """Attach a rotating file handler to the logger."""
    directory = ensure_log_dir(log_dir)
    handler = RotatingFileHandler(
        directory / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    return handler


def configure_logging(
    level: int = logging.INFO,
    namespace: str = "compounder",
    prefix: str = "compounder",
    log_dir: Optional[Path] = LOG_DIR,
) -> Iterable[RotatingFileHandler]:
    """
    Configure console logging plus rotating general/error log files.

    Args:
        level: Level for general logs.
        namespace: Logger namespace that receives the file handlers.
        prefix: File prefix (e.g., "compounder" -> compounder.log, compounder_errors.log).
        log_dir: Directory for log files, or None for console only.
    """
    logging.basicConfig(level=level, format=DEFAULT_FORMAT)

    logger = logging.getLogger(namespace)
    logger.setLevel(level)

    handlers: List[RotatingFileHandler] = []
    if log_dir is None:
        return handlers

    general_name = f"{prefix}.log"
    error_name = f"{prefix}_errors.log"

    if not has_rotating_handler(logger, general_name):
        handlers.append(add_rotating_handler(logger, general_name, level, log_dir=log_dir))

    if not has_rotating_handler(logger, error_name):
        handlers.append(add_rotating_handler(logger, error_name, logging.ERROR, log_dir=log_dir))

    return handlers


__all__ = [
    "configure_logging",
    "ensure_log_dir",
]
