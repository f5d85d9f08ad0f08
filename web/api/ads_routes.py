"""Scheduled ads API: CRUD for admins and the active-ad lookup for the login page."""
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.exceptions import NotFound
from portal.models import ScheduledAd
from portal.services.ad_scheduler import find_active_ad
from web.api.deps import get_now, get_session

logger = logging.getLogger("portal.ads")

router = APIRouter(prefix="/api", tags=["ads"])

_SCHEDULE_FIELDS = ("start_date", "end_date", "start_time", "end_time")


# --- Pydantic schemas ---


class AdCreate(BaseModel):
    title: str = ""
    description: str = ""
    image: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_active: bool = True

    @field_validator(*_SCHEDULE_FIELDS, mode="before")
    @classmethod
    def _blank_is_unbounded(cls, v):
        # The admin form submits "" for an unset bound
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AdUpdate(AdCreate):
    """Same fields as create; only the fields sent are changed."""

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None


class AdResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    image: str
    start_date: Optional[date]
    end_date: Optional[date]
    start_time: Optional[time]
    end_time: Optional[time]
    is_active: bool
    created_at: Optional[datetime] = None


async def _get_ad_or_404(session: AsyncSession, ad_id: int) -> ScheduledAd:
    ad = await session.get(ScheduledAd, ad_id)
    if not ad:
        raise NotFound("Ad not found")
    return ad


# --- Routes ---


@router.get("/ads", response_model=list[AdResponse])
async def list_ads(session: AsyncSession = Depends(get_session)):
    """List all ads, newest first."""
    result = await session.execute(
        select(ScheduledAd).order_by(ScheduledAd.created_at.desc(), ScheduledAd.id.desc())
    )
    return [AdResponse.model_validate(ad) for ad in result.scalars().all()]


@router.post("/ads")
async def create_ad(body: AdCreate, session: AsyncSession = Depends(get_session)):
    """Create an ad. New ads are active unless the body says otherwise."""
    ad = ScheduledAd(**body.model_dump())
    session.add(ad)
    await session.commit()
    await session.refresh(ad)
    logger.info("Created ad %d: %s", ad.id, ad.title)
    return {"success": True, "ad": AdResponse.model_validate(ad).model_dump(mode="json")}


@router.put("/ads/{ad_id}")
async def update_ad(ad_id: int, body: AdUpdate, session: AsyncSession = Depends(get_session)):
    """Update an ad in place, including toggling ``is_active``."""
    ad = await _get_ad_or_404(session, ad_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is None and key not in _SCHEDULE_FIELDS:
            continue
        setattr(ad, key, value)
    await session.commit()
    logger.info("Updated ad %d (active: %s)", ad.id, ad.is_active)
    return {"success": True}


@router.delete("/ads/{ad_id}")
async def delete_ad(ad_id: int, session: AsyncSession = Depends(get_session)):
    """Delete an ad."""
    ad = await _get_ad_or_404(session, ad_id)
    await session.delete(ad)
    await session.commit()
    logger.info("Deleted ad %d", ad_id)
    return {"success": True}


@router.get("/active-ad")
async def get_active_ad(
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    """The ad to show right now, or null."""
    ad = await find_active_ad(session, now)
    if ad is None:
        return {"ad": None}
    return {"ad": AdResponse.model_validate(ad).model_dump(mode="json")}
