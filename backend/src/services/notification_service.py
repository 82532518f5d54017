"""
Notification service for creating, reading and managing notifications.

Provides business logic for:
- Creating notification records (video, channel, system)
- Paginated, filtered notification listings for the owner
- Unread counts for the notification badge (optionally cached)
- Read-state transitions (single and bulk) and owner deletion
- Retention of read notifications
"""

from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from backend.src.config.settings import AppSettings, get_settings
from backend.src.models.notification import Notification, NotificationType
from backend.src.services.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.guid import GuidService
from backend.src.utils.cache import UnreadCountCache, get_unread_count_cache
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

MESSAGE_MAX_LENGTH = 500

VALID_TYPES = {t.value for t in NotificationType}


def _type_value(type) -> str:
    return type.value if isinstance(type, NotificationType) else type


class NotificationService:
    """
    Service for the notification store and the unread counter.

    Every method that changes a user's notifications drops that user's
    cached unread count after the commit.
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[AppSettings] = None,
        cache: Optional[UnreadCountCache] = None,
    ):
        """
        Initialize notification service.

        Args:
            db: SQLAlchemy database session
            settings: Application settings (page sizes, retention)
            cache: Unread count cache; defaults to the process-wide instance
        """
        self.db = db
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else get_unread_count_cache()

    # ========================================================================
    # Notification CRUD
    # ========================================================================

    def create_notification(
        self,
        user_id: int,
        type: str,
        message: str,
        channel_id: Optional[int] = None,
        video_id: Optional[int] = None,
    ) -> Notification:
        """
        Create a notification record in the database.

        Args:
            user_id: Recipient user's internal ID
            type: Notification type (video, channel, system)
            message: Notification text (truncated to 500 chars)
            channel_id: Referenced channel, required for type=channel
            video_id: Referenced video, required for type=video

        Returns:
            Created Notification instance

        Raises:
            ValidationError: If the type is unknown, the message is empty or
                the type's required reference is missing
            IntegrityError: If the (user, video, type) key already exists;
                the caller owns the rollback
        """
        type_value = _type_value(type)
        if type_value not in VALID_TYPES:
            raise ValidationError(f"Invalid notification type: {type}", field="type")
        if not message or not message.strip():
            raise ValidationError("Notification message is required", field="message")
        if type_value == NotificationType.VIDEO.value and video_id is None:
            raise ValidationError("Video notifications require a video", field="video_id")
        if type_value == NotificationType.CHANNEL.value and channel_id is None:
            raise ValidationError("Channel notifications require a channel", field="channel_id")

        notification = Notification(
            user_id=user_id,
            type=type_value,
            message=message[:MESSAGE_MAX_LENGTH],
            channel_id=channel_id,
            video_id=video_id,
            is_read=False,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        self.cache.invalidate(user_id)

        logger.info(
            "Created notification",
            extra={
                "guid": notification.guid,
                "type": type_value,
                "user_id": user_id,
            },
        )
        return notification

    def create_system_notification(self, user_id: int, message: str) -> Notification:
        """Create a system notification for one user."""
        return self.create_notification(
            user_id=user_id,
            type=NotificationType.SYSTEM.value,
            message=message,
        )

    def get_notification_by_guid(self, guid: str) -> Notification:
        """
        Get a notification by GUID regardless of owner.

        Args:
            guid: Notification GUID (ntf_xxx)

        Returns:
            Notification instance

        Raises:
            NotFoundError: If the GUID is malformed or no row matches
        """
        if not GuidService.validate_guid(guid, "ntf"):
            raise NotFoundError("Notification", guid)

        try:
            uuid_value = GuidService.parse_guid(guid, "ntf")
        except ValueError:
            raise NotFoundError("Notification", guid)

        notification = (
            self.db.query(Notification)
            .filter(Notification.uuid == uuid_value)
            .first()
        )

        if not notification:
            raise NotFoundError("Notification", guid)

        return notification

    def list_notifications(
        self,
        user_id: int,
        type: Optional[str] = None,
        unread_only: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Notification], int]:
        """
        List notifications for a user, newest first.

        Ties on created_at are broken by id descending so pages are stable.

        Args:
            user_id: User's internal ID
            type: Optional type filter (video, channel, system)
            unread_only: If True, only return unread notifications
            limit: Page size (defaults to and is bounded by configuration)
            offset: Number to skip

        Returns:
            Tuple of (notifications list, total count)

        Raises:
            ValidationError: If the type filter is unknown
        """
        type_value = _type_value(type) if type is not None else None
        if type_value is not None and type_value not in VALID_TYPES:
            raise ValidationError(f"Invalid notification type: {type}", field="type")

        # Opportunistic cleanup of expired read notifications
        self.apply_retention(user_id)

        page_size = self.resolve_page_size(limit)

        query = self.db.query(Notification).filter(Notification.user_id == user_id)

        if type_value:
            query = query.filter(Notification.type == type_value)

        if unread_only:
            query = query.filter(Notification.is_read.is_(False))

        total = query.count()

        notifications = (
            query.options(
                joinedload(Notification.channel),
                joinedload(Notification.video),
            )
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(max(0, offset))
            .limit(page_size)
            .all()
        )

        return notifications, total

    def resolve_page_size(self, limit: Optional[int] = None) -> int:
        """Apply the configured default and maximum to a requested page size."""
        if limit is None:
            limit = self.settings.notifications_page_size
        return self.settings.clamp_page_size(limit)

    def get_unread_count(self, user_id: int) -> int:
        """
        Get the count of unread notifications for a user.

        Uses the partial index on (user_id WHERE is_read = false) when the
        cache misses.
        """
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        generation = self.cache.generation(user_id)
        count = (
            self.db.query(func.count(Notification.id))
            .filter(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .scalar()
        ) or 0

        self.cache.set(user_id, count, generation=generation)
        return count

    def get_stats(self, user_id: int) -> Dict[str, int]:
        """
        Get notification stats for the dashboard header.

        Returns:
            Dict with total_count, unread_count, this_week_count
        """
        base_filter = [Notification.user_id == user_id]

        total_count = (
            self.db.query(func.count(Notification.id))
            .filter(*base_filter)
            .scalar()
        )

        seven_days_ago = datetime.utcnow() - timedelta(days=7)
        this_week_count = (
            self.db.query(func.count(Notification.id))
            .filter(*base_filter, Notification.created_at >= seven_days_ago)
            .scalar()
        )

        return {
            "total_count": total_count or 0,
            "unread_count": self.get_unread_count(user_id),
            "this_week_count": this_week_count or 0,
        }

    def mark_as_read(self, user_id: int, guid: str) -> Notification:
        """
        Mark one of the user's notifications as read (idempotent).

        Args:
            user_id: Caller's internal ID
            guid: Notification GUID (ntf_xxx)

        Returns:
            Updated Notification instance

        Raises:
            NotFoundError: If not found or owned by another user
        """
        notification = self.get_notification_by_guid(guid)
        if notification.user_id != user_id:
            raise NotFoundError("Notification", guid)

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(notification)
            self.cache.invalidate(user_id)

        return notification

    def mark_all_as_read(self, user_id: int) -> int:
        """
        Mark all unread notifications as read for a user.

        Returns:
            Number of notifications that were marked as read
        """
        updated = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .update(
                {"is_read": True, "read_at": datetime.utcnow()},
                synchronize_session="fetch",
            )
        )
        self.db.commit()
        self.cache.invalidate(user_id)

        if updated:
            logger.info(
                f"Marked {updated} notifications as read",
                extra={"user_id": user_id},
            )

        return updated

    def delete_notification(self, user_id: int, guid: str) -> None:
        """
        Hard-delete one of the user's notifications.

        Raises:
            NotFoundError: If no such notification exists
            ForbiddenError: If it belongs to another user
        """
        notification = self.get_notification_by_guid(guid)
        if notification.user_id != user_id:
            raise ForbiddenError("Notification", guid)

        self.db.delete(notification)
        self.db.commit()
        self.cache.invalidate(user_id)

        logger.info(
            "Deleted notification",
            extra={"guid": guid, "user_id": user_id},
        )

    # ========================================================================
    # Retention
    # ========================================================================

    def apply_retention(self, user_id: int) -> int:
        """
        Purge a user's expired read notifications and enforce the per-user cap.

        Read notifications whose read_at is older than the retention window
        are deleted. If the user still holds more than the configured maximum,
        the oldest read notifications beyond it are deleted. Unread
        notifications are never purged, even above the cap.

        Returns:
            Number of notifications deleted
        """
        cutoff = datetime.utcnow() - timedelta(
            days=self.settings.notifications_read_retention_days
        )
        expired = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.is_read.is_(True),
                Notification.read_at.isnot(None),
                Notification.read_at < cutoff,
            )
            .delete(synchronize_session=False)
        )

        over_cap = 0
        total = (
            self.db.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id)
            .scalar()
        ) or 0
        excess = total - self.settings.notifications_max_per_user
        if excess > 0:
            oldest_read_ids = [
                row.id
                for row in (
                    self.db.query(Notification.id)
                    .filter(
                        Notification.user_id == user_id,
                        Notification.is_read.is_(True),
                    )
                    .order_by(Notification.created_at.asc(), Notification.id.asc())
                    .limit(excess)
                    .all()
                )
            ]
            if oldest_read_ids:
                over_cap = (
                    self.db.query(Notification)
                    .filter(Notification.id.in_(oldest_read_ids))
                    .delete(synchronize_session=False)
                )

        self.db.commit()

        count = expired + over_cap
        if count > 0:
            # Only read rows are deleted, but the cached count may be stale anyway
            self.cache.invalidate(user_id)
            logger.info(
                f"Cleaned up {count} read notifications",
                extra={
                    "user_id": user_id,
                    "expired": expired,
                    "over_cap": over_cap,
                    "retention_days": self.settings.notifications_read_retention_days,
                },
            )

        return count

    def apply_retention_all(self) -> Dict[str, Any]:
        """
        Apply retention for every user holding notifications.

        Returns:
            Dict with users_checked and deleted counts
        """
        user_ids = [
            row.user_id
            for row in self.db.query(Notification.user_id).distinct().all()
        ]

        deleted = 0
        for user_id in user_ids:
            deleted += self.apply_retention(user_id)

        return {"users_checked": len(user_ids), "deleted": deleted}
