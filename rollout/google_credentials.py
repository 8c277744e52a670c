"""Service-account info for the Sheets store.

Credentials come either from a downloaded service-account JSON file or from
the ``GOOGLE_CLIENT_EMAIL``/``GOOGLE_PRIVATE_KEY`` environment pair.  Both
paths produce the mapping accepted by
``google.oauth2.service_account.Credentials.from_service_account_info``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

__all__ = [
    "CredentialsFileInvalidError",
    "REQUIRED_FIELDS",
    "credentials_from_environment",
    "read_service_account_file",
    "service_account_info",
]

REQUIRED_FIELDS: Tuple[str, ...] = ("client_email", "private_key", "token_uri")

CLIENT_EMAIL_ENV = "GOOGLE_CLIENT_EMAIL"
PRIVATE_KEY_ENV = "GOOGLE_PRIVATE_KEY"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


class CredentialsFileInvalidError(Exception):
    """Raised when service-account data cannot be used to sign requests."""


def normalise_private_key(key: str) -> str:
    """Restore escaped newlines; the PEM parser needs real line breaks."""

    key = key.replace("\r\n", "\n").replace("\\n", "\n")
    return key if key.endswith("\n") else key + "\n"


def service_account_info(payload: Mapping[str, object]) -> Dict[str, object]:
    """Validate ``payload`` and return a copy with a usable private key."""

    if payload.get("type") != "service_account":
        raise CredentialsFileInvalidError("Not a service account key (type must be 'service_account').")
    missing = [name for name in REQUIRED_FIELDS if not str(payload.get(name) or "").strip()]
    if missing:
        raise CredentialsFileInvalidError(f"Service account JSON missing fields: {', '.join(missing)}")
    info = dict(payload)
    info["private_key"] = normalise_private_key(str(info["private_key"]))
    return info


def read_service_account_file(path: Path) -> Dict[str, object]:
    try:
        text = Path(path).read_text(encoding="utf-8-sig").strip()
    except OSError as exc:
        raise CredentialsFileInvalidError(f"Cannot read {path}: {exc}") from exc
    if not text:
        raise CredentialsFileInvalidError(f"{path} is empty.")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CredentialsFileInvalidError(f"{path} is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, Mapping):
        raise CredentialsFileInvalidError(f"{path} does not hold a JSON object.")
    return service_account_info(payload)


def credentials_from_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, object]:
    """Build service-account info from ``GOOGLE_CLIENT_EMAIL``/``GOOGLE_PRIVATE_KEY``."""

    env = os.environ if environ is None else environ
    email = (env.get(CLIENT_EMAIL_ENV) or "").strip()
    key = env.get(PRIVATE_KEY_ENV) or ""
    missing = [name for name, value in ((CLIENT_EMAIL_ENV, email), (PRIVATE_KEY_ENV, key.strip())) if not value]
    if missing:
        raise CredentialsFileInvalidError(
            "Google Sheets credentials are not configured: " + ", ".join(missing)
        )
    return service_account_info(
        {
            "type": "service_account",
            "client_email": email,
            "private_key": key,
            "token_uri": DEFAULT_TOKEN_URI,
        }
    )
