"""Pick the promotional ad that is live right now.

An ad is live when it is flagged active and the current local date and time of
day fall inside its optional bounds. Each bound is inclusive and an unset bound
does not restrict its side. Among live ads the most recently created one wins.

``is_scheduled`` is the reference check for one ad; ``find_active_ad`` applies
the same bounds in SQL so only the winning row is loaded.

Time windows are plain ``start <= now <= end`` ranges, so a window that crosses
midnight (start 22:00, end 02:00) can never be satisfied and the ad is never
shown. Split such a schedule into two ads.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

import config
from portal.models import ScheduledAd


def portal_now(tz_name: str | None = None) -> datetime:
    """Current wall-clock time in the portal's zone."""
    return datetime.now(timezone.utc).astimezone(ZoneInfo(tz_name or config.PORTAL_TIMEZONE))


def _local_parts(now: datetime) -> tuple[date, time]:
    # Drop tzinfo and sub-second precision so it compares with stored TIME values
    return now.date(), now.time().replace(microsecond=0, tzinfo=None)


def is_scheduled(ad: ScheduledAd, now: datetime) -> bool:
    """True when every set date/time bound of ``ad`` holds at ``now``. Ignores ``is_active``."""
    today, time_of_day = _local_parts(now)
    if ad.start_date is not None and today < ad.start_date:
        return False
    if ad.end_date is not None and today > ad.end_date:
        return False
    if ad.start_time is not None and time_of_day < ad.start_time:
        return False
    if ad.end_time is not None and time_of_day > ad.end_time:
        return False
    return True


async def find_active_ad(session: AsyncSession, now: datetime) -> Optional[ScheduledAd]:
    """Newest active ad whose schedule holds at ``now``, or None."""
    today, time_of_day = _local_parts(now)
    result = await session.execute(
        select(ScheduledAd)
        .where(
            ScheduledAd.is_active.is_(True),
            or_(ScheduledAd.start_date.is_(None), ScheduledAd.start_date <= today),
            or_(ScheduledAd.end_date.is_(None), ScheduledAd.end_date >= today),
            or_(ScheduledAd.start_time.is_(None), ScheduledAd.start_time <= time_of_day),
            or_(ScheduledAd.end_time.is_(None), ScheduledAd.end_time >= time_of_day),
        )
        .order_by(ScheduledAd.created_at.desc(), ScheduledAd.id.desc())
        .limit(1)
    )
    return result.scalars().first()
