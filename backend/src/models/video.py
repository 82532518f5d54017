"""
Video model for ingested content.

Videos arrive from the ingestion source once per newly discovered upload and
trigger the subscriber fan-out.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Video(Base, GuidMixin):
    """
    An ingested video belonging to exactly one channel.

    Attributes:
        external_id: Platform video identifier, unique (ingestion idempotency)
        channel_id: Owning channel
        title: Video title, used in notification messages
        thumbnail_url: Optional thumbnail for clients
        published_at: Publication time reported by the platform
        created_at: Ingestion time (the fan-out sweep window keys on this)

    Deleting a video deletes the notifications that reference it
    (ON DELETE CASCADE on notifications.video_id).
    """

    __tablename__ = "videos"
    GUID_PREFIX = "vid"

    id = Column(Integer, primary_key=True, autoincrement=True)

    external_id = Column(String(100), nullable=False, unique=True, index=True)
    channel_id = Column(
        Integer,
        ForeignKey("channels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(500), nullable=False)
    thumbnail_url = Column(String(1024), nullable=True)
    published_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    channel = relationship("Channel", back_populates="videos")

    def __repr__(self) -> str:
        return f"<Video(id={self.id}, external_id='{self.external_id}')>"
