"""
SQLAlchemy models for the FanHub notifications backend.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# All models inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
# (required for Alembic autogenerate and init_db)
from backend.src.models.user import User
from backend.src.models.channel import Channel
from backend.src.models.video import Video
from backend.src.models.channel_subscription import ChannelSubscription
from backend.src.models.notification import Notification, NotificationType

__all__ = [
    "Base",
    "User",
    "Channel",
    "Video",
    "ChannelSubscription",
    "Notification",
    "NotificationType",
]
