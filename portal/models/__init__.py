"""Database models."""
from portal.models.base import Base, Database
from portal.models.page_setting import PageSetting  # noqa: F401 - for metadata
from portal.models.scheduled_ad import ScheduledAd  # noqa: F401 - for metadata
from portal.models.collected_email import CollectedEmail  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Database",
    "PageSetting",
    "ScheduledAd",
    "CollectedEmail",
]
