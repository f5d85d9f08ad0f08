"""Collected guest emails (admin export)."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models import CollectedEmail
from web.api.deps import get_session

router = APIRouter(prefix="/api/emails", tags=["emails"])


class CollectedEmailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    source: str
    created_at: datetime


@router.get("", response_model=list[CollectedEmailResponse])
async def list_emails(session: AsyncSession = Depends(get_session)):
    """Emails of guests who signed in through a provider, newest first."""
    result = await session.execute(
        select(CollectedEmail).order_by(CollectedEmail.created_at.desc(), CollectedEmail.id.desc())
    )
    return result.scalars().all()
