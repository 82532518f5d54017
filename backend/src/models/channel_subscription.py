"""
ChannelSubscription model: a user's subscription to a channel.

Created on subscribe, mutated by the notification preference toggle and
destroyed on unsubscribe.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, Boolean, DateTime, ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from backend.src.models import Base


class ChannelSubscription(Base):
    """
    (user, channel) subscription with a notification preference.

    Attributes:
        user_id: Subscribing user (owner)
        channel_id: Subscribed channel (referenced, not owned)
        notifications_enabled: Whether new uploads notify this user

    Constraints:
        One subscription per (user_id, channel_id).
    """

    __tablename__ = "channel_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    channel_id = Column(
        Integer, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )

    notifications_enabled = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="subscriptions")
    channel = relationship("Channel", back_populates="subscriptions")

    __table_args__ = (
        UniqueConstraint("user_id", "channel_id", name="uq_channel_subscriptions_user_channel"),
        # Fan-out lookup: subscribers of a channel with notifications on
        Index(
            "ix_channel_subscriptions_channel_enabled",
            "channel_id",
            "notifications_enabled",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ChannelSubscription(user_id={self.user_id}, channel_id={self.channel_id}, "
            f"notifications_enabled={self.notifications_enabled})>"
        )
