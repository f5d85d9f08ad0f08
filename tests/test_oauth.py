"""Tests for guest social login and the gateway hand-off."""
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

import config
from portal.services.gateway import build_login_url, parse_state
from portal.services.oauth import OAuthProvider

GOOGLE_TOKEN = ("POST", "https://oauth2.googleapis.com/token")
GOOGLE_USERINFO = ("GET", "https://www.googleapis.com/oauth2/v2/userinfo")
FACEBOOK_TOKEN = ("GET", "https://graph.facebook.com/v12.0/oauth/access_token")
FACEBOOK_ME = ("GET", "https://graph.facebook.com/me")

HOTSPOT_QUERY = "ip=10.5.50.1&link-login-only=http%3A%2F%2F10.5.50.1%2Flogin&link-orig=http%3A%2F%2Fexample.com%2F"


def _query(url):
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query, keep_blank_values=True).items()}


async def _enable_google(client):
    await client.post(
        "/api/settings",
        json={"google_login_enabled": "true", "google_client_id": "gid", "google_client_secret": "gsecret"},
    )


async def _enable_facebook(client):
    await client.post(
        "/api/settings",
        json={"facebook_login_enabled": "true", "facebook_app_id": "fid", "facebook_app_secret": "fsecret"},
    )


def _google_ok(provider, email="guest@example.com"):
    provider.routes[GOOGLE_TOKEN] = lambda req: httpx.Response(200, json={"access_token": "tok-1"})
    provider.routes[GOOGLE_USERINFO] = lambda req: httpx.Response(200, json={"email": email})


# --- login ---


@pytest.mark.asyncio
async def test_login_disabled_returns_403(client, provider):
    r = await client.get(f"/auth/google/login?{HOTSPOT_QUERY}")
    assert r.status_code == 403
    assert provider.calls == []


@pytest.mark.asyncio
async def test_login_missing_client_id_returns_403(client, provider):
    await client.post("/api/settings", json={"facebook_login_enabled": "true"})
    r = await client.get("/auth/facebook/login")
    assert r.status_code == 403
    assert provider.calls == []


@pytest.mark.asyncio
async def test_google_login_redirects_with_state(client):
    await _enable_google(client)
    r = await client.get(f"/auth/google/login?{HOTSPOT_QUERY}", headers={"Host": "evil.example"})
    assert r.status_code == 307
    location = r.headers["location"]
    assert location.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
    q = _query(location)
    assert q["client_id"] == "gid"
    assert q["redirect_uri"] == "https://gowifi.nuanu.io/auth/google/callback"
    assert q["response_type"] == "code"
    assert q["scope"] == "email profile"
    assert q["state"] == HOTSPOT_QUERY


@pytest.mark.asyncio
async def test_facebook_login_redirect(client, monkeypatch):
    monkeypatch.setattr(config, "PUBLIC_BASE_URL", "https://portal.test/")
    await _enable_facebook(client)
    r = await client.get("/auth/facebook/login?ip=10.0.0.1")
    assert r.status_code == 307
    location = r.headers["location"]
    assert location.startswith("https://www.facebook.com/v12.0/dialog/oauth?")
    q = _query(location)
    assert q["client_id"] == "fid"
    assert q["redirect_uri"] == "https://portal.test/auth/facebook/callback"
    assert q["scope"] == "email"
    assert q["state"] == "ip=10.0.0.1"


@pytest.mark.asyncio
async def test_unknown_provider_and_step(client):
    assert (await client.get("/auth/twitter/login")).status_code == 404
    assert (await client.get("/auth/google/logout")).status_code == 404


# --- callback ---


@pytest.mark.asyncio
async def test_callback_missing_code_returns_400(client, provider):
    await _enable_google(client)
    r = await client.get("/auth/google/callback?state=ip%3D10.0.0.1")
    assert r.status_code == 400
    assert provider.calls == []


@pytest.mark.asyncio
async def test_facebook_callback_missing_code_returns_400(client, provider):
    await _enable_facebook(client)
    r = await client.get("/auth/facebook/callback?state=ip%3D10.0.0.1")
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert provider.calls == []


@pytest.mark.asyncio
async def test_google_callback_hands_off_to_gateway(client, provider):
    await _enable_google(client)
    _google_ok(provider)
    r = await client.get("/auth/google/callback", params={"code": "abc", "state": HOTSPOT_QUERY})
    assert r.status_code == 307
    location = r.headers["location"]
    assert location.startswith("http://10.5.50.1/login?")
    q = _query(location)
    assert q == {"username": "guest@example.com", "password": "password", "dst": "http://example.com/"}

    token_req, userinfo_req = provider.calls
    form = {k: v[0] for k, v in parse_qs(token_req.content.decode()).items()}
    assert form == {
        "client_id": "gid",
        "client_secret": "gsecret",
        "code": "abc",
        "grant_type": "authorization_code",
        "redirect_uri": "https://gowifi.nuanu.io/auth/google/callback",
    }
    assert userinfo_req.url.params["access_token"] == "tok-1"


@pytest.mark.asyncio
async def test_callback_applies_gateway_defaults(client, provider):
    await _enable_google(client)
    _google_ok(provider)
    r = await client.get("/auth/google/callback", params={"code": "abc"})
    assert r.status_code == 307
    location = r.headers["location"]
    assert location.startswith("http://192.168.1.1/login?")
    assert _query(location)["dst"] == "https://www.nuanu.com/"


@pytest.mark.asyncio
async def test_facebook_callback(client, provider):
    await _enable_facebook(client)
    provider.routes[FACEBOOK_TOKEN] = lambda req: httpx.Response(200, json={"access_token": "fb-tok"})
    provider.routes[FACEBOOK_ME] = lambda req: httpx.Response(200, json={"id": "1", "email": "fb@example.com"})
    r = await client.get("/auth/facebook/callback", params={"code": "xyz", "state": "ip=10.1.1.1"})
    assert r.status_code == 307
    assert r.headers["location"].startswith("http://10.1.1.1/login?")
    assert _query(r.headers["location"])["username"] == "fb@example.com"

    token_req, me_req = provider.calls
    assert token_req.url.params["client_id"] == "fid"
    assert token_req.url.params["client_secret"] == "fsecret"
    assert token_req.url.params["code"] == "xyz"
    assert token_req.url.params["redirect_uri"] == "https://gowifi.nuanu.io/auth/facebook/callback"
    assert me_req.url.params["fields"] == "email"
    assert me_req.url.params["access_token"] == "fb-tok"


@pytest.mark.asyncio
async def test_token_exchange_network_error(client, provider):
    await _enable_google(client)

    def boom(req):
        raise httpx.ConnectError("connection refused", request=req)

    provider.routes[GOOGLE_TOKEN] = boom
    r = await client.get("/auth/google/callback", params={"code": "abc"})
    assert r.status_code == 500
    assert r.json()["message"] == "Token exchange failed"
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_token_exchange_rejected(client, provider):
    await _enable_google(client)
    provider.routes[GOOGLE_TOKEN] = lambda req: httpx.Response(400, json={"error": "invalid_grant"})
    r = await client.get("/auth/google/callback", params={"code": "stale"})
    assert r.status_code == 500
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_profile_failure(client, provider):
    await _enable_google(client)
    provider.routes[GOOGLE_TOKEN] = lambda req: httpx.Response(200, json={"access_token": "tok-1"})
    provider.routes[GOOGLE_USERINFO] = lambda req: httpx.Response(401, json={"error": "bad token"})
    r = await client.get("/auth/google/callback", params={"code": "abc"})
    assert r.status_code == 500
    assert r.json()["message"] == "Failed to get user info"


@pytest.mark.asyncio
async def test_empty_email_proceeds_by_default(client, provider):
    await _enable_google(client)
    _google_ok(provider, email="")
    r = await client.get("/auth/google/callback", params={"code": "abc"})
    assert r.status_code == 307
    assert _query(r.headers["location"])["username"] == ""
    assert (await client.get("/api/emails")).json() == []


@pytest.mark.asyncio
async def test_empty_email_rejected_when_configured(client, provider, monkeypatch):
    monkeypatch.setattr(config, "OAUTH_REJECT_EMPTY_EMAIL", True)
    await _enable_google(client)
    _google_ok(provider, email="")
    r = await client.get("/auth/google/callback", params={"code": "abc"})
    assert r.status_code == 500


@pytest.mark.asyncio
async def test_callback_collects_email(client, provider):
    await _enable_google(client)
    _google_ok(provider, email="first@example.com")
    await client.get("/auth/google/callback", params={"code": "a"})
    _google_ok(provider, email="second@example.com")
    await client.get("/auth/google/callback", params={"code": "b"})

    r = await client.get("/api/emails")
    assert r.status_code == 200
    emails = r.json()
    assert [e["email"] for e in emails] == ["second@example.com", "first@example.com"]
    assert all(e["source"] == "google" for e in emails)


# --- gateway helpers ---


def test_parse_state_defaults():
    params = parse_state("")
    assert params.ip == "192.168.1.1"
    assert params.link_login == "http://192.168.1.1/login"
    assert params.destination == "https://www.nuanu.com/"


def test_parse_state_synthesizes_login_link_from_ip():
    params = parse_state("ip=10.9.9.9")
    assert params.link_login == "http://10.9.9.9/login"


def test_build_login_url_escapes_values():
    params = parse_state("link-login-only=http%3A%2F%2Fgw%2Flogin&link-orig=https%3A%2F%2Fa.b%2F%3Fx%3D1%26y%3D2")
    url = build_login_url(params, "a+b@example.com")
    assert url.startswith("http://gw/login?")
    assert _query(url) == {"username": "a+b@example.com", "password": "password", "dst": "https://a.b/?x=1&y=2"}


def test_provider_base_requires_request_hooks():
    with pytest.raises(TypeError):
        OAuthProvider()

    class TokenOnly(OAuthProvider):
        async def request_token(self, client, creds, code):
            return httpx.Response(200)

    with pytest.raises(TypeError):
        TokenOnly()
