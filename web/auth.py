"""Authentication for web API: admin login token issuance."""
from __future__ import annotations

from typing import Protocol

# Placeholder capability token the admin frontend stores after login. It never
# expires and is the same for every login; swap the issuer to change that.
STATIC_ADMIN_TOKEN = "nuanu_mock_token_2026"


class TokenIssuer(Protocol):
    def issue(self, username: str) -> str: ...


class StaticTokenIssuer:
    """Issues the same fixed token for every successful login."""

    def __init__(self, token: str = STATIC_ADMIN_TOKEN):
        self._token = token

    def issue(self, username: str) -> str:
        return self._token


_default_issuer = StaticTokenIssuer()


def get_token_issuer() -> TokenIssuer:
    """Dependency: the issuer used by the login route."""
    return _default_issuer
