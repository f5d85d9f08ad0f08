"""Request-scoped dependencies shared by the API routers."""
from __future__ import annotations

from datetime import datetime
from typing import AsyncIterator

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

import config
from portal.models import Database
from portal.services.ad_scheduler import portal_now
from portal.services.settings_store import SettingsStore


def get_database(request: Request) -> Database:
    return request.app.state.db


async def get_session(db: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    async with db.session_factory() as session:
        yield session


def get_settings_store(session: AsyncSession = Depends(get_session)) -> SettingsStore:
    return SettingsStore(session)


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Outbound client for identity provider calls."""
    async with httpx.AsyncClient(timeout=config.OAUTH_HTTP_TIMEOUT) as client:
        yield client


def get_now() -> datetime:
    """Current time in the portal's zone."""
    return portal_now()
