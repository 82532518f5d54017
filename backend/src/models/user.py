"""
User model for notification recipients.

Account management, login and profile pages live outside this service; the
model carries only what notification ownership and authorization need.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class User(Base, GuidMixin):
    """
    A registered user of the video hub.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (usr_xxx, inherited from GuidMixin)
        email: Login email (unique)
        display_name: Name shown in the UI
        is_active: Deactivated users cannot authenticate
        is_admin: Admin dashboard access (ingestion and system notifications)

    Relationships:
        subscriptions: Channel subscriptions owned by the user
        notifications: Notifications addressed to the user
    """

    __tablename__ = "users"
    GUID_PREFIX = "usr"

    id = Column(Integer, primary_key=True, autoincrement=True)

    email = Column(String(255), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subscriptions = relationship(
        "ChannelSubscription",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    notifications = relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
