"""
Admin API module.

Contains endpoints for administrators and the video importer:
- Channel and video ingestion (with subscriber fan-out)
- System notifications
"""

from backend.src.api.admin.ingestion import router as ingestion_router
from backend.src.api.admin.notifications import router as notifications_router

__all__ = ["ingestion_router", "notifications_router"]
