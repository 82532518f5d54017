"""
Pydantic schemas for notification API request/response validation.

Provides data validation and serialization for:
- Notification history (list, detail, unread count, stats)
- Read-state transitions (mark one, mark all)
- System notifications sent by administrators
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_serializer, field_validator

from backend.src.models.notification import NotificationType


# ============================================================================
# Notification History Schemas
# ============================================================================


class NotificationResponse(BaseModel):
    """Response schema for a single notification."""

    guid: str = Field(..., description="Notification GUID (ntf_xxx)")
    type: NotificationType = Field(..., description="Notification type")
    message: str
    is_read: bool
    channel_guid: Optional[str] = Field(default=None, description="Referenced channel (chn_xxx)")
    video_guid: Optional[str] = Field(default=None, description="Referenced video (vid_xxx)")
    read_at: Optional[datetime] = None
    created_at: datetime

    @field_serializer("read_at", "created_at")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone."""
        return v.isoformat() + "Z" if v else None

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Response schema for paginated notification list."""

    items: List[NotificationResponse]
    total: int = Field(..., ge=0, description="Total notifications matching filter")
    limit: int
    offset: int


class UnreadCountResponse(BaseModel):
    """Response schema for unread notification count."""

    count: int = Field(..., ge=0, description="Number of unread notifications")


class MarkAllReadResponse(BaseModel):
    """Response schema for the mark-all-read operation."""

    updated_count: int = Field(..., ge=0, description="Notifications marked as read")


class NotificationStatsResponse(BaseModel):
    """Response schema for notification stats (dashboard header)."""

    total_count: int = Field(..., ge=0, description="Total notifications")
    unread_count: int = Field(..., ge=0, description="Unread notifications")
    this_week_count: int = Field(..., ge=0, description="Notifications in the last 7 days")


# ============================================================================
# System Notification Schemas
# ============================================================================


class SystemNotificationCreate(BaseModel):
    """
    Schema for sending a system notification.

    Required:
        message: Notification text

    Optional:
        user_guid: Recipient (usr_xxx); omitted means every active user
    """

    message: str = Field(..., min_length=1, max_length=500)
    user_guid: Optional[str] = Field(default=None, description="Recipient user GUID (usr_xxx)")

    @field_validator("message")
    @classmethod
    def validate_message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message must not be blank")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "Scheduled maintenance tonight at 02:00 UTC",
                "user_guid": None,
            }
        }
    }


class SystemNotificationResponse(BaseModel):
    """Response schema for a system notification broadcast."""

    created: int = Field(..., ge=0, description="Notifications created")
