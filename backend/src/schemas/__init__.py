"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.notifications import (
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    MarkAllReadResponse,
    NotificationStatsResponse,
    SystemNotificationCreate,
    SystemNotificationResponse,
)
from backend.src.schemas.subscriptions import (
    ChannelSummary,
    SubscriptionCreate,
    SubscriptionUpdate,
    SubscriptionResponse,
    SubscriptionListResponse,
    SubscribedChannelsResponse,
    SubscriptionStatusResponse,
)
from backend.src.schemas.videos import (
    ChannelRegister,
    ChannelResponse,
    VideoIngest,
    VideoResponse,
    VideoIngestResponse,
    VideoDeleteResponse,
    FanoutResultResponse,
)

__all__ = [
    # Notifications
    "NotificationResponse",
    "NotificationListResponse",
    "UnreadCountResponse",
    "MarkAllReadResponse",
    "NotificationStatsResponse",
    "SystemNotificationCreate",
    "SystemNotificationResponse",
    # Subscriptions
    "ChannelSummary",
    "SubscriptionCreate",
    "SubscriptionUpdate",
    "SubscriptionResponse",
    "SubscriptionListResponse",
    "SubscribedChannelsResponse",
    "SubscriptionStatusResponse",
    # Ingestion
    "ChannelRegister",
    "ChannelResponse",
    "VideoIngest",
    "VideoResponse",
    "VideoIngestResponse",
    "VideoDeleteResponse",
    "FanoutResultResponse",
]
