"""Admin credential check against the configured username/password."""
from __future__ import annotations

from dataclasses import dataclass

import config


def clean_env(value: str | None) -> str:
    """Drop non-printable characters, collapse whitespace runs to one space, trim.

    Env values pasted through dashboards often carry stray CR/LF or zero-width
    characters that would otherwise make the comparison fail.
    """
    if not value:
        return ""
    kept = "".join(ch for ch in value if ch.isprintable() or ch.isspace())
    return " ".join(kept.split())


@dataclass(frozen=True)
class AdminCredentials:
    username: str
    password: str


def configured_credentials() -> AdminCredentials:
    """Admin credentials from the environment, with hardcoded fallbacks when unset."""
    return AdminCredentials(
        username=clean_env(config.ADMIN_USERNAME) or config.DEFAULT_ADMIN_USERNAME,
        password=clean_env(config.ADMIN_PASSWORD) or config.DEFAULT_ADMIN_PASSWORD,
    )


def check_admin_credentials(username: str | None, password: str | None) -> bool:
    """Case-sensitive match of the trimmed submission against the configured admin."""
    expected = configured_credentials()
    return (username or "").strip() == expected.username and (password or "").strip() == expected.password
