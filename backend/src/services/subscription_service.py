"""
Subscription service for managing user channel subscriptions.

Provides business logic for:
- Subscribing and unsubscribing users to channels
- Toggling the per-subscription notification preference
- Resolving channel identifiers (GUID or platform id)
- Finding the subscribers a new upload fans out to
"""

from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from backend.src.models.channel import Channel
from backend.src.models.channel_subscription import ChannelSubscription
from backend.src.services.exceptions import ConflictError, NotFoundError
from backend.src.services.guid import GuidService
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


class SubscriptionService:
    """
    Service for the channel subscription store.

    Usage:
        >>> service = SubscriptionService(db)
        >>> sub = service.subscribe(user.id, "UC_x5XG1OV2P6uZZ5FSM9Ttw")
        >>> service.update_preference(user.id, sub.channel.guid, False)
    """

    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # Lookups
    # ========================================================================

    def resolve_channel(self, identifier: str) -> Channel:
        """
        Resolve a channel from its GUID (chn_xxx) or platform external id.

        Raises:
            NotFoundError: If no channel matches
        """
        if not identifier:
            raise NotFoundError("Channel", identifier)

        if GuidService.validate_guid(identifier, "chn"):
            try:
                uuid_value = GuidService.parse_guid(identifier, "chn")
            except ValueError:
                raise NotFoundError("Channel", identifier)
            channel = self.db.query(Channel).filter(Channel.uuid == uuid_value).first()
        else:
            channel = (
                self.db.query(Channel)
                .filter(Channel.external_id == identifier)
                .first()
            )

        if not channel:
            raise NotFoundError("Channel", identifier)

        return channel

    def get_subscription(
        self, user_id: int, channel_id: int
    ) -> Optional[ChannelSubscription]:
        return (
            self.db.query(ChannelSubscription)
            .filter(
                ChannelSubscription.user_id == user_id,
                ChannelSubscription.channel_id == channel_id,
            )
            .first()
        )

    def find_subscribers(
        self, channel_id: int, enabled_only: bool = True
    ) -> List[ChannelSubscription]:
        """
        Get the subscriptions of a channel.

        Uses the (channel_id, notifications_enabled) index.

        Args:
            channel_id: Channel's internal ID
            enabled_only: Only return subscriptions with notifications on

        Returns:
            Subscriptions ordered by user ID
        """
        query = self.db.query(ChannelSubscription).filter(
            ChannelSubscription.channel_id == channel_id
        )
        if enabled_only:
            query = query.filter(ChannelSubscription.notifications_enabled.is_(True))

        return query.order_by(ChannelSubscription.user_id.asc()).all()

    def list_subscriptions(self, user_id: int) -> List[ChannelSubscription]:
        """List a user's subscriptions, most recent first."""
        return (
            self.db.query(ChannelSubscription)
            .options(joinedload(ChannelSubscription.channel))
            .filter(ChannelSubscription.user_id == user_id)
            .order_by(
                ChannelSubscription.created_at.desc(),
                ChannelSubscription.id.desc(),
            )
            .all()
        )

    def list_subscribed_channels(self, user_id: int) -> List[Channel]:
        """List the channels a user is subscribed to, by title."""
        return (
            self.db.query(Channel)
            .join(ChannelSubscription, ChannelSubscription.channel_id == Channel.id)
            .filter(ChannelSubscription.user_id == user_id)
            .order_by(Channel.title.asc(), Channel.id.asc())
            .all()
        )

    def get_subscription_status(
        self, user_id: int, channel_identifier: str
    ) -> Tuple[bool, bool]:
        """
        Get whether the user follows a channel and gets its notifications.

        Returns:
            Tuple of (is_subscribed, notifications_enabled); notifications
            are reported disabled when not subscribed

        Raises:
            NotFoundError: If the channel does not exist
        """
        channel = self.resolve_channel(channel_identifier)
        subscription = self.get_subscription(user_id, channel.id)
        if subscription is None:
            return False, False
        return True, subscription.notifications_enabled

    # ========================================================================
    # Mutations
    # ========================================================================

    def subscribe(
        self,
        user_id: int,
        channel_identifier: str,
        notifications_enabled: bool = True,
    ) -> ChannelSubscription:
        """
        Subscribe a user to a channel.

        Raises:
            NotFoundError: If the channel does not exist
            ConflictError: If the user is already subscribed
        """
        channel = self.resolve_channel(channel_identifier)

        if self.get_subscription(user_id, channel.id) is not None:
            raise ConflictError(
                f"Already subscribed to channel {channel.guid}",
                resource="ChannelSubscription",
            )

        subscription = ChannelSubscription(
            user_id=user_id,
            channel_id=channel.id,
            notifications_enabled=notifications_enabled,
        )
        self.db.add(subscription)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Concurrent subscribe won the race on the unique key
            self.db.rollback()
            raise ConflictError(
                f"Already subscribed to channel {channel.guid}",
                resource="ChannelSubscription",
            ) from e
        self.db.refresh(subscription)

        logger.info(
            "User subscribed to channel",
            extra={
                "user_id": user_id,
                "channel_guid": channel.guid,
                "notifications_enabled": notifications_enabled,
            },
        )
        return subscription

    def update_preference(
        self,
        user_id: int,
        channel_identifier: str,
        notifications_enabled: bool,
    ) -> ChannelSubscription:
        """
        Turn new-upload notifications on or off for a subscription.

        Raises:
            NotFoundError: If the channel does not exist or the user is not
                subscribed to it
        """
        channel = self.resolve_channel(channel_identifier)
        subscription = self.get_subscription(user_id, channel.id)
        if subscription is None:
            raise NotFoundError("ChannelSubscription", channel.guid)

        subscription.notifications_enabled = notifications_enabled
        self.db.commit()
        self.db.refresh(subscription)

        logger.info(
            "Updated subscription notification preference",
            extra={
                "user_id": user_id,
                "channel_guid": channel.guid,
                "notifications_enabled": notifications_enabled,
            },
        )
        return subscription

    def unsubscribe(self, user_id: int, channel_identifier: str) -> None:
        """
        Remove a user's subscription to a channel.

        Notifications already delivered for the channel are kept.

        Raises:
            NotFoundError: If the channel does not exist or the user is not
                subscribed to it
        """
        channel = self.resolve_channel(channel_identifier)
        subscription = self.get_subscription(user_id, channel.id)
        if subscription is None:
            raise NotFoundError("ChannelSubscription", channel.guid)

        self.db.delete(subscription)
        self.db.commit()

        logger.info(
            "User unsubscribed from channel",
            extra={"user_id": user_id, "channel_guid": channel.guid},
        )
