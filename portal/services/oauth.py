"""Social login through OAuth2 authorization-code exchange.

A login runs in two requests. ``login`` sends the guest to the provider with
the hotspot's query string as ``state``; ``callback`` trades the returned code
for an access token, reads the guest's email and hands the guest back to the
hotspot gateway (see ``portal.services.gateway``).

The redirect URI is always built from ``config.PUBLIC_BASE_URL``. Access
tokens are used as returned; nothing verifies signatures or claims.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

import config
from portal.exceptions import (
    MissingCode,
    NotFound,
    ProviderDisabled,
    TokenExchangeFailed,
    UpstreamFailure,
)
from portal.services.gateway import build_login_url, parse_state

logger = logging.getLogger("portal.oauth")


@dataclass(frozen=True)
class ProviderCredentials:
    client_id: str
    client_secret: str
    enabled: bool


@dataclass(frozen=True)
class LoginResult:
    email: str
    redirect_url: str


def _json_body(response: httpx.Response) -> dict:
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


class OAuthProvider(ABC):
    """Endpoints and settings keys of one identity provider."""

    name: str
    display_name: str
    authorize_endpoint: str
    scope: str
    enabled_key: str
    client_id_key: str
    client_secret_key: str

    def credentials(self, settings: dict[str, str]) -> ProviderCredentials:
        return ProviderCredentials(
            client_id=settings.get(self.client_id_key, ""),
            client_secret=settings.get(self.client_secret_key, ""),
            enabled=settings.get(self.enabled_key, "false") == "true",
        )

    def callback_uri(self) -> str:
        return f"{config.PUBLIC_BASE_URL.rstrip('/')}/auth/{self.name}/callback"

    def authorization_params(self, creds: ProviderCredentials, state: str) -> dict[str, str]:
        return {
            "client_id": creds.client_id,
            "redirect_uri": self.callback_uri(),
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }

    def authorization_url(self, creds: ProviderCredentials, state: str) -> str:
        return f"{self.authorize_endpoint}?{urlencode(self.authorization_params(creds, state))}"

    @abstractmethod
    async def request_token(self, client: httpx.AsyncClient, creds: ProviderCredentials, code: str) -> httpx.Response:
        """Send the provider's token request for ``code``."""

    @abstractmethod
    async def request_profile(self, client: httpx.AsyncClient, access_token: str) -> httpx.Response:
        """Send the provider's profile request carrying ``access_token``."""

    async def exchange_code(self, client: httpx.AsyncClient, creds: ProviderCredentials, code: str) -> str:
        """Trade an authorization code for an access token."""
        try:
            response = await self.request_token(client, creds, code)
            data = _json_body(response)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s token exchange failed: %s", self.display_name, e)
            raise TokenExchangeFailed() from e
        access_token = data.get("access_token")
        if not access_token:
            logger.warning("%s token response has no access_token", self.display_name)
            raise TokenExchangeFailed()
        return access_token

    async def fetch_email(self, client: httpx.AsyncClient, access_token: str) -> str:
        """Read the signed-in user's email. May be empty when the user withheld it."""
        try:
            response = await self.request_profile(client, access_token)
            data = _json_body(response)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s profile request failed: %s", self.display_name, e)
            raise UpstreamFailure("Failed to get user info") from e
        return (data.get("email") or "").strip()


class GoogleProvider(OAuthProvider):
    name = "google"
    display_name = "Google"
    authorize_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://www.googleapis.com/oauth2/v2/userinfo"
    scope = "email profile"
    enabled_key = "google_login_enabled"
    client_id_key = "google_client_id"
    client_secret_key = "google_client_secret"

    async def request_token(self, client: httpx.AsyncClient, creds: ProviderCredentials, code: str) -> httpx.Response:
        return await client.post(
            self.token_endpoint,
            data={
                "client_id": creds.client_id,
                "client_secret": creds.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.callback_uri(),
            },
        )

    async def request_profile(self, client: httpx.AsyncClient, access_token: str) -> httpx.Response:
        return await client.get(self.userinfo_endpoint, params={"access_token": access_token})


class FacebookProvider(OAuthProvider):
    name = "facebook"
    display_name = "Facebook"
    authorize_endpoint = "https://www.facebook.com/v12.0/dialog/oauth"
    token_endpoint = "https://graph.facebook.com/v12.0/oauth/access_token"
    profile_endpoint = "https://graph.facebook.com/me"
    scope = "email"
    enabled_key = "facebook_login_enabled"
    client_id_key = "facebook_app_id"
    client_secret_key = "facebook_app_secret"

    def authorization_params(self, creds: ProviderCredentials, state: str) -> dict[str, str]:
        # The dialog defaults to response_type=code
        return {
            "client_id": creds.client_id,
            "redirect_uri": self.callback_uri(),
            "state": state,
            "scope": self.scope,
        }

    async def request_token(self, client: httpx.AsyncClient, creds: ProviderCredentials, code: str) -> httpx.Response:
        return await client.get(
            self.token_endpoint,
            params={
                "client_id": creds.client_id,
                "redirect_uri": self.callback_uri(),
                "client_secret": creds.client_secret,
                "code": code,
            },
        )

    async def request_profile(self, client: httpx.AsyncClient, access_token: str) -> httpx.Response:
        return await client.get(
            self.profile_endpoint,
            params={"fields": "email", "access_token": access_token},
        )


PROVIDERS: dict[str, OAuthProvider] = {
    provider.name: provider for provider in (GoogleProvider(), FacebookProvider())
}


def get_provider(name: str) -> OAuthProvider:
    provider = PROVIDERS.get(name)
    if provider is None:
        raise NotFound("Auth route not found")
    return provider


def build_login_redirect(provider: OAuthProvider, settings: dict[str, str], raw_query: str) -> str:
    """Authorization URL for ``provider``; the hotspot query string rides along as ``state``."""
    creds = provider.credentials(settings)
    if not creds.enabled or not creds.client_id:
        raise ProviderDisabled(f"{provider.display_name} login is disabled or misconfigured")
    logger.info("Starting %s login, redirect_uri=%s", provider.display_name, provider.callback_uri())
    return provider.authorization_url(creds, raw_query)


async def complete_login(
    provider: OAuthProvider,
    settings: dict[str, str],
    client: httpx.AsyncClient,
    code: str | None,
    state: str | None,
) -> LoginResult:
    """Finish a provider login and return where to send the guest."""
    if not code:
        raise MissingCode()
    creds = provider.credentials(settings)
    access_token = await provider.exchange_code(client, creds, code)
    email = await provider.fetch_email(client, access_token)
    if not email:
        if config.OAUTH_REJECT_EMPTY_EMAIL:
            raise UpstreamFailure(f"{provider.display_name} did not return an email address")
        logger.warning("%s login returned no email; continuing with an empty username", provider.display_name)
    gateway = parse_state(state)
    logger.info("%s login complete, handing off to gateway %s", provider.display_name, gateway.ip)
    return LoginResult(email=email, redirect_url=build_login_url(gateway, email))
