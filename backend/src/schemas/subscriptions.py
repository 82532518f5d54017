"""
Pydantic schemas for channel subscription API request/response validation.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_serializer


class ChannelSummary(BaseModel):
    """Channel as shown in subscription listings."""

    guid: str = Field(..., description="Channel GUID (chn_xxx)")
    external_id: str = Field(..., description="Platform channel id")
    title: str
    platform: str

    model_config = {"from_attributes": True}


class SubscriptionCreate(BaseModel):
    """
    Schema for subscribing to a channel.

    Required:
        channel: Channel GUID (chn_xxx) or platform external id

    Optional:
        notifications_enabled: Notify on new uploads (default true)
    """

    channel: str = Field(..., min_length=1, max_length=100)
    notifications_enabled: bool = True

    model_config = {
        "json_schema_extra": {
            "example": {
                "channel": "UC_x5XG1OV2P6uZZ5FSM9Ttw",
                "notifications_enabled": True,
            }
        }
    }


class SubscriptionUpdate(BaseModel):
    """Schema for toggling a subscription's notification preference."""

    notifications_enabled: bool


class SubscriptionResponse(BaseModel):
    """Response schema for a subscription."""

    channel: ChannelSummary
    notifications_enabled: bool
    created_at: datetime

    @field_serializer("created_at")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone."""
        return v.isoformat() + "Z" if v else None

    model_config = {"from_attributes": True}


class SubscriptionListResponse(BaseModel):
    items: List[SubscriptionResponse]
    total: int = Field(..., ge=0)


class SubscribedChannelsResponse(BaseModel):
    items: List[ChannelSummary]
    total: int = Field(..., ge=0)


class SubscriptionStatusResponse(BaseModel):
    """Whether the caller follows a channel and receives its notifications."""

    is_subscribed: bool
    notifications_enabled: bool
