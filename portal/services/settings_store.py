"""Key/value store for page branding and identity provider credentials."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.exceptions import UpstreamFailure
from portal.models import PageSetting

logger = logging.getLogger("portal.settings")

DEFAULTS = {
    "background_image": "url(/img/nuanu.png)",
    "background_color": "#667eea",
    "page_title": "Welcome To NUANU Free WiFi",
    "button_text": "Connect to WiFi",
    "google_login_enabled": "false",
    "facebook_login_enabled": "false",
    "google_client_id": "",
    "google_client_secret": "",
    "facebook_app_id": "",
    "facebook_app_secret": "",
}

SETTING_KEYS = tuple(DEFAULTS)

SECRET_KEYS = ("google_client_secret", "facebook_app_secret")

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_for(session: AsyncSession):
    """Dialect ``insert`` construct that supports ``on_conflict_do_update``."""
    dialect = session.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"Settings upsert is not supported on {dialect}") from None


class SettingsStore:
    """Settings persistence over one database session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_all(self) -> dict[str, str]:
        """Return every stored key/value. An unreachable store yields an empty mapping."""
        try:
            result = await self._session.execute(select(PageSetting))
            rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Settings store unavailable, using defaults: %s", e)
            await self._rollback_quietly()
            return {}
        return {row.key: row.value for row in rows}

    async def effective(self) -> dict[str, str]:
        """Defaults overlaid with stored values for the recognized keys."""
        stored = await self.get_all()
        return {key: stored.get(key, default) for key, default in DEFAULTS.items()}

    async def upsert(self, key: str, value: str | None) -> bool:
        """Overwrite or insert ``key``. Empty values are ignored. Returns True when something was written.

        Runs as a single ``INSERT ... ON CONFLICT (key) DO UPDATE``; concurrent
        writers of one key resolve last-write-wins.
        """
        if not value:
            return False
        now = datetime.utcnow()
        stmt = _insert_for(self._session)(PageSetting).values(key=key, value=value, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PageSetting.key],
            set_={"value": value, "updated_at": now},
        )
        try:
            await self._session.execute(stmt)
            await self._session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to store setting %s: %s", key, e)
            await self._rollback_quietly()
            raise UpstreamFailure("Failed to save settings") from e
        return True

    async def upsert_many(self, values: dict[str, str | None]) -> list[str]:
        """Upsert every non-empty value; returns the keys written."""
        written = []
        for key, value in values.items():
            if await self.upsert(key, value):
                written.append(key)
        return written

    async def _rollback_quietly(self) -> None:
        try:
            await self._session.rollback()
        except (SQLAlchemyError, OSError):
            logger.debug("Rollback after store failure also failed", exc_info=True)
