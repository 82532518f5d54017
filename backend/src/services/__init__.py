"""
Service layer for business logic.

This module exports all service classes for use in API endpoints.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ForbiddenError,
    ConflictError,
    ValidationError,
)
from backend.src.services.notification_service import NotificationService
from backend.src.services.subscription_service import SubscriptionService
from backend.src.services.fanout_service import FanoutService, FanoutResult
from backend.src.services.ingestion_service import VideoIngestionService

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ForbiddenError",
    "ConflictError",
    "ValidationError",
    "NotificationService",
    "SubscriptionService",
    "FanoutService",
    "FanoutResult",
    "VideoIngestionService",
]
