"""Long-running services."""

from src.services.announcement_service import AnnouncementService, CycleReport

__all__ = ["AnnouncementService", "CycleReport"]
