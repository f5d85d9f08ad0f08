"""Page settings API: branding and identity provider config (public read, admin write)."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

import config
from portal.services.settings_store import SECRET_KEYS, SETTING_KEYS, SettingsStore
from web.api.deps import get_settings_store

logger = logging.getLogger("portal.settings")

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingsResponse(BaseModel):
    background_image: str
    background_image_type: str = "url"
    background_image_data: str = ""
    background_color: str
    page_title: str
    button_text: str
    google_login_enabled: str
    facebook_login_enabled: str
    google_client_id: str
    google_client_secret: str
    facebook_app_id: str
    facebook_app_secret: str


class SettingsUpdate(BaseModel):
    background_image: Optional[str] = None
    background_color: Optional[str] = None
    page_title: Optional[str] = None
    button_text: Optional[str] = None
    google_login_enabled: Optional[str] = None
    facebook_login_enabled: Optional[str] = None
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    facebook_app_id: Optional[str] = None
    facebook_app_secret: Optional[str] = None

    @field_validator("google_login_enabled", "facebook_login_enabled", mode="before")
    @classmethod
    def _flag_to_str(cls, v):
        # Toggles are stored as the strings "true"/"false"
        if isinstance(v, bool):
            return "true" if v else "false"
        return v


@router.get("", response_model=SettingsResponse)
async def get_settings(store: SettingsStore = Depends(get_settings_store)):
    """Get page settings (public, the login page renders from these)."""
    values = await store.effective()
    if not config.SETTINGS_EXPOSE_SECRETS:
        for key in SECRET_KEYS:
            values[key] = ""
    return SettingsResponse(**values)


@router.post("")
async def update_settings(body: SettingsUpdate, store: SettingsStore = Depends(get_settings_store)):
    """Upsert every provided non-empty field. Empty strings leave the stored value alone."""
    updates = body.model_dump(exclude_unset=True)
    written = await store.upsert_many({key: updates[key] for key in SETTING_KEYS if key in updates})
    logger.info("Settings updated: %s", ", ".join(written) or "nothing")
    return {"success": True}
