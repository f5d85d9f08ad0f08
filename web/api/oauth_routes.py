"""Guest social login: /auth/{provider}/login and /auth/{provider}/callback."""
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models import CollectedEmail
from portal.services.oauth import build_login_redirect, complete_login, get_provider
from portal.services.settings_store import SettingsStore
from web.api.deps import get_http_client, get_session, get_settings_store

logger = logging.getLogger("portal.oauth")

router = APIRouter(prefix="/auth", tags=["oauth"])


async def _record_email(session: AsyncSession, email: str, source: str) -> None:
    """Keep the guest's email for the admin list. Best-effort; the guest still gets online."""
    try:
        session.add(CollectedEmail(email=email, source=source))
        await session.commit()
    except (SQLAlchemyError, OSError):
        logger.exception("Failed to record %s login email", source)
        await session.rollback()


@router.get("/{provider_name}/login")
async def provider_login(
    provider_name: str,
    request: Request,
    store: SettingsStore = Depends(get_settings_store),
):
    """Send the guest to the provider. The hotspot's query string is carried as ``state``."""
    provider = get_provider(provider_name)
    settings = await store.effective()
    url = build_login_redirect(provider, settings, request.url.query)
    return RedirectResponse(url, status_code=307)


@router.get("/{provider_name}/callback")
async def provider_callback(
    provider_name: str,
    request: Request,
    session: AsyncSession = Depends(get_session),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Finish the login and redirect the guest to the gateway's login endpoint."""
    provider = get_provider(provider_name)
    settings = await SettingsStore(session).effective()
    result = await complete_login(
        provider,
        settings,
        client,
        code=request.query_params.get("code"),
        state=request.query_params.get("state"),
    )
    if result.email:
        await _record_email(session, result.email, provider.name)
    return RedirectResponse(result.redirect_url, status_code=307)
