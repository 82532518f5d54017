"""
Notification model for in-app notification history.

Notifications are created by the subscriber fan-out (new video, channel
update) or by system events, and serve as the source of truth for the
notification bell and the notifications page.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Index,
    CheckConstraint, UniqueConstraint, text,
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class NotificationType(str, enum.Enum):
    """Kinds of notification shown to users."""
    VIDEO = "video"
    CHANNEL = "channel"
    SYSTEM = "system"


class Notification(Base, GuidMixin):
    """
    Notification addressed to exactly one user.

    Attributes:
        type: video | channel | system
        channel_id: Referenced channel (required for type=channel)
        video_id: Referenced video (required for type=video)
        message: Human-readable text (max 500 chars)
        is_read: Read flag backing the unread badge
        read_at: When the notification was first read (retention clock)

    Lifecycle:
        Created unread. Only read-state transitions mutate it. Deleted by the
        owner, by video deletion (cascade) or by the retention purge, which
        never touches unread rows.

    Constraints:
        (user_id, video_id, type) is unique; it is the fan-out idempotency key.
        NULL video_id rows (channel/system) are not constrained by it.
    """

    __tablename__ = "notifications"
    GUID_PREFIX = "ntf"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    channel_id = Column(
        Integer, ForeignKey("channels.id", ondelete="CASCADE"), nullable=True
    )
    video_id = Column(
        Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=True, index=True
    )

    type = Column(String(20), nullable=False)
    message = Column(String(500), nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = relationship("User", back_populates="notifications")
    channel = relationship("Channel")
    video = relationship("Video")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "video_id", "type", name="uq_notifications_user_video_type"
        ),
        CheckConstraint(
            "type IN ('video', 'channel', 'system')",
            name="ck_notifications_type",
        ),
        CheckConstraint(
            "type != 'video' OR video_id IS NOT NULL",
            name="ck_notifications_video_ref",
        ),
        CheckConstraint(
            "type != 'channel' OR channel_id IS NOT NULL",
            name="ck_notifications_channel_ref",
        ),
        # Partial index for unread count queries
        Index(
            "ix_notifications_user_unread",
            "user_id",
            postgresql_where=text("is_read = false"),
        ),
    )

    @property
    def channel_guid(self):
        return self.channel.guid if self.channel is not None else None

    @property
    def video_guid(self):
        return self.video.guid if self.video is not None else None

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, user_id={self.user_id}, "
            f"type='{self.type}', is_read={self.is_read})>"
        )
