"""
Channel model for content sources users can subscribe to.

Channels are created by the ingestion side (admin dashboard or importer)
and referenced, never owned, by subscriptions.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Channel(Base, GuidMixin):
    """
    A content channel (e.g. a YouTube channel).

    Attributes:
        external_id: Platform identifier (YouTube channel id), unique
        title: Display title, used in notification messages
        platform: Source platform (youtube, twitch, ...)
    """

    __tablename__ = "channels"
    GUID_PREFIX = "chn"

    id = Column(Integer, primary_key=True, autoincrement=True)

    external_id = Column(String(100), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    platform = Column(String(30), nullable=False, default="youtube")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    videos = relationship("Video", back_populates="channel", passive_deletes=True)
    subscriptions = relationship(
        "ChannelSubscription", back_populates="channel", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Channel(id={self.id}, external_id='{self.external_id}')>"
