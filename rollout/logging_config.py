"""Application-wide logging configuration utilities."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from rollout import app_paths

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOG_PATH: Optional[Path] = None


def configure_logging(level: int = logging.INFO, path: Optional[Path] = None) -> Path:
    """Configure the root logger to write to the rollout log file.

    Parameters
    ----------
    level:
        The minimum logging level for the root logger. ``logging.INFO`` keeps
        the batch summaries and drops per-cell decisions.
    path:
        Explicit log file location. Defaults to ``<app dir>/logs/rollout.log``.

    Returns
    -------
    pathlib.Path
        The path to the log file.

    Calling this again with the same path does not add a second handler.
    """

    global _LOG_PATH

    log_path = Path(path) if path is not None else app_paths.logs_path("rollout.log")
    app_paths.ensure_directory(log_path.parent)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.setLevel(level)
    else:
        root_logger.setLevel(min(root_logger.level, level))

    already_configured = any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == os.path.abspath(log_path)
        for handler in root_logger.handlers
    )
    if not already_configured:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)

    _LOG_PATH = log_path
    root_logger.debug("Logging configured. Writing to %s", log_path)
    return log_path


def get_log_path() -> Path:
    """Return the path to the rollout log file, configuring logging if needed."""

    if _LOG_PATH is None:
        return configure_logging()
    return _LOG_PATH


__all__ = ["LOG_FORMAT", "configure_logging", "get_log_path"]
