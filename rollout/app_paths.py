"""Centralised helpers for the rollout application data directory."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Mapping, Optional

_APP_ENV_VARS: Iterable[str] = ("LOCALAPPDATA", "APPDATA")


def detect_base_directory(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    for env_var in _APP_ENV_VARS:
        value = env.get(env_var)
        if value:
            return Path(value).expanduser().resolve() / "Rollout"
    return Path.home().resolve() / ".rollout"


APP_DIR: Path = detect_base_directory()
LOGS_DIR: Path = APP_DIR / "logs"
CREDENTIALS_DIR: Path = APP_DIR / "credentials"


def ensure_directory(path: Path) -> Path:
    """Ensure that ``path`` exists, returning the :class:`~pathlib.Path`."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def data_path(*parts: str) -> Path:
    """Return a path rooted inside :data:`APP_DIR` without creating it."""

    return APP_DIR.joinpath(*parts)


def logs_path(*parts: str) -> Path:
    return LOGS_DIR.joinpath(*parts)


def credentials_path(*parts: str) -> Path:
    return CREDENTIALS_DIR.joinpath(*parts)


__all__ = [
    "APP_DIR",
    "CREDENTIALS_DIR",
    "LOGS_DIR",
    "credentials_path",
    "data_path",
    "detect_base_directory",
    "ensure_directory",
    "logs_path",
]
