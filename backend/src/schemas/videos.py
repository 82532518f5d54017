"""
Pydantic schemas for the ingestion (admin) API.

Used by the platform importer to push channels and videos, and to
re-trigger fan-out.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer


class ChannelRegister(BaseModel):
    """Schema for registering (or renaming) a channel."""

    external_id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=255)
    platform: str = Field(default="youtube", min_length=1, max_length=30)


class ChannelResponse(BaseModel):
    guid: str = Field(..., description="Channel GUID (chn_xxx)")
    external_id: str
    title: str
    platform: str
    created: bool = Field(default=False, description="True when the channel was new")

    model_config = {"from_attributes": True}


class VideoIngest(BaseModel):
    """
    Schema for ingesting a video.

    Required:
        channel: Channel GUID (chn_xxx) or platform external id
        external_id: Platform video id
        title: Video title
    """

    channel: str = Field(..., min_length=1, max_length=100)
    external_id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=500)
    thumbnail_url: Optional[str] = Field(default=None, max_length=1024)
    published_at: Optional[datetime] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "channel": "UC_x5XG1OV2P6uZZ5FSM9Ttw",
                "external_id": "dQw4w9WgXcQ",
                "title": "Match highlights",
                "thumbnail_url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
                "published_at": "2026-10-19T10:00:00Z",
            }
        }
    }


class FanoutResultResponse(BaseModel):
    """Per-run fan-out counts."""

    subscribers: int = Field(..., ge=0)
    created: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)

    model_config = {"from_attributes": True}


class VideoResponse(BaseModel):
    guid: str = Field(..., description="Video GUID (vid_xxx)")
    external_id: str
    title: str
    thumbnail_url: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime

    @field_serializer("published_at", "created_at")
    @classmethod
    def serialize_datetime_utc(cls, v: Optional[datetime]) -> Optional[str]:
        """Serialize datetime as ISO 8601 with explicit UTC timezone."""
        return v.isoformat() + "Z" if v else None

    model_config = {"from_attributes": True}


class VideoIngestResponse(BaseModel):
    video: VideoResponse
    created: bool = Field(..., description="True when the video was new")
    fanout: FanoutResultResponse


class VideoDeleteResponse(BaseModel):
    notifications_removed: int = Field(..., ge=0)
