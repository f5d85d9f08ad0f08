"""Hotspot gateway hand-off after a successful provider login."""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode

import config

# The gateway expects this literal as the password of a social login. It is a
# signal to the hotspot's login script, not a credential.
GATEWAY_PASSWORD = "password"


@dataclass(frozen=True)
class GatewayParams:
    """Gateway parameters the hotspot appended to the portal URL."""

    ip: str
    link_login: str
    destination: str


def parse_state(state: str | None) -> GatewayParams:
    """Recover gateway parameters from an OAuth ``state`` (the original login query string)."""
    params = parse_qs(state or "", keep_blank_values=True)

    def first(name: str) -> str:
        values = params.get(name)
        return values[0] if values else ""

    ip = first("ip") or config.GATEWAY_DEFAULT_IP
    link_login = first("link-login-only") or f"http://{ip}/login"
    destination = first("link-orig") or config.GATEWAY_DEFAULT_DESTINATION
    return GatewayParams(ip=ip, link_login=link_login, destination=destination)


def build_login_url(params: GatewayParams, email: str) -> str:
    """URL that signs ``email`` into the hotspot and sends the guest on to their original page."""
    query = urlencode({"username": email, "password": GATEWAY_PASSWORD, "dst": params.destination})
    return f"{params.link_login}?{query}"
