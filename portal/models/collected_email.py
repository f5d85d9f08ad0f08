"""Emails of guests who signed in through an identity provider."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portal.models.base import Base


class CollectedEmail(Base):
    __tablename__ = "collected_emails"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False)  # google, facebook
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
