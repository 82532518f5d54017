"""
Fan-out service: turns channel events into per-subscriber notifications.

When a video is ingested, every subscriber of its channel with notifications
enabled receives exactly one ``video`` notification. The (user, video, type)
unique key makes the operation idempotent, so re-running fan-out for the
same video (retry, scheduled sweep) only fills in the users that were missed.

Each notification is committed on its own: one failing insert never rolls
back notifications that were already delivered to other subscribers.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.config.settings import AppSettings, get_settings
from backend.src.models.channel import Channel
from backend.src.models.notification import Notification, NotificationType
from backend.src.models.video import Video
from backend.src.services.exceptions import NotFoundError
from backend.src.services.guid import GuidService
from backend.src.services.notification_service import NotificationService
from backend.src.services.subscription_service import SubscriptionService
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


@dataclass
class FanoutResult:
    """
    Outcome of one fan-out run.

    Attributes:
        subscribers: Enabled subscribers found for the channel
        created: Notifications inserted by this run
        skipped: Subscribers already notified (existing row or lost race)
        failed: Inserts that failed for any other storage reason
    """
    subscribers: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def complete(self) -> bool:
        """True when every subscriber now holds the notification."""
        return self.failed == 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def build_video_message(channel_title: str, video_title: str) -> str:
    return f"New video from {channel_title}: {video_title}"


DUPLICATE_NOTIFICATION_CONSTRAINT = "uq_notifications_user_video_type"


def constraint_name(error: IntegrityError) -> Optional[str]:
    """Name of the violated constraint, when the driver reports it (PostgreSQL)."""
    diag = getattr(error.orig, "diag", None)
    return getattr(diag, "constraint_name", None)


def is_duplicate_notification(error: IntegrityError) -> bool:
    """True if the error is the (user, video, type) unique key firing."""
    name = constraint_name(error)
    if name is not None:
        return name == DUPLICATE_NOTIFICATION_CONSTRAINT
    # SQLite reports only a message, e.g. "UNIQUE constraint failed: notifications.user_id, ..."
    return "UNIQUE constraint failed" in str(error.orig)


class FanoutService:
    """
    Service that delivers channel events to subscribers.

    Usage:
        >>> service = FanoutService(db)
        >>> result = service.on_video_ingested(video)
        >>> result.created, result.skipped
        (3, 0)
    """

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        subscription_service: Optional[SubscriptionService] = None,
        settings: Optional[AppSettings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.notifications = notification_service or NotificationService(
            db, settings=self.settings
        )
        self.subscriptions = subscription_service or SubscriptionService(db)

    # ========================================================================
    # Video fan-out
    # ========================================================================

    def get_video_by_guid(self, guid: str) -> Video:
        """
        Get a video by GUID (vid_xxx).

        Raises:
            NotFoundError: If the GUID is malformed or no video matches
        """
        if not GuidService.validate_guid(guid, "vid"):
            raise NotFoundError("Video", guid)

        try:
            uuid_value = GuidService.parse_guid(guid, "vid")
        except ValueError:
            raise NotFoundError("Video", guid)

        video = self.db.query(Video).filter(Video.uuid == uuid_value).first()
        if not video:
            raise NotFoundError("Video", guid)

        return video

    def on_video_ingested(self, video: Video) -> FanoutResult:
        """
        Notify every enabled subscriber of the video's channel.

        Subscribers that already hold a notification for this video are
        skipped. A unique-key violation (concurrent fan-out for the same
        video) is rolled back, logged and counted as skipped. Any other
        storage error on one insert is rolled back, logged and counted as
        failed; the remaining subscribers are still processed.

        Args:
            video: Persisted video whose channel exists

        Returns:
            FanoutResult with per-run counts

        Raises:
            NotFoundError: If the video's channel does not exist
        """
        channel = self.db.query(Channel).filter(Channel.id == video.channel_id).first()
        if channel is None:
            raise NotFoundError("Channel", video.channel_id)

        # Plain values survive the rollbacks below, which expire ORM instances
        video_id = video.id
        video_guid = video.guid
        channel_id = channel.id
        message = build_video_message(channel.title, video.title)

        subscriber_ids = [
            sub.user_id for sub in self.subscriptions.find_subscribers(channel_id)
        ]
        result = FanoutResult(subscribers=len(subscriber_ids))

        if not subscriber_ids:
            logger.debug(
                "No subscribers to notify",
                extra={"video_guid": video_guid, "channel_id": channel_id},
            )
            return result

        already_notified = self._already_notified_user_ids(video_id, subscriber_ids)

        for user_id in subscriber_ids:
            if user_id in already_notified:
                result.skipped += 1
                continue

            try:
                self.notifications.create_notification(
                    user_id=user_id,
                    type=NotificationType.VIDEO.value,
                    message=message,
                    channel_id=channel_id,
                    video_id=video_id,
                )
                result.created += 1
            except IntegrityError as e:
                self.db.rollback()
                if is_duplicate_notification(e):
                    result.skipped += 1
                    logger.info(
                        "Notification already exists, skipping subscriber",
                        extra={"video_guid": video_guid, "user_id": user_id},
                    )
                else:
                    result.failed += 1
                    logger.error(
                        f"Integrity error creating notification: {e.orig}",
                        extra={
                            "video_guid": video_guid,
                            "user_id": user_id,
                            "constraint": constraint_name(e),
                        },
                    )
            except SQLAlchemyError as e:
                self.db.rollback()
                result.failed += 1
                logger.error(
                    f"Failed to create notification: {e}",
                    extra={"video_guid": video_guid, "user_id": user_id},
                )

        log = logger.warning if result.failed else logger.info
        log(
            "Video fan-out complete",
            extra={"video_guid": video_guid, "fanout": result.to_dict()},
        )
        return result

    def process_video(self, video_guid: str) -> FanoutResult:
        """
        Run fan-out for a stored video, identified by GUID.

        Raises:
            NotFoundError: If the video does not exist
        """
        return self.on_video_ingested(self.get_video_by_guid(video_guid))

    def _already_notified_user_ids(
        self, video_id: int, user_ids: Iterable[int]
    ) -> Set[int]:
        rows = (
            self.db.query(Notification.user_id)
            .filter(
                Notification.video_id == video_id,
                Notification.type == NotificationType.VIDEO.value,
                Notification.user_id.in_(list(user_ids)),
            )
            .all()
        )
        return {row.user_id for row in rows}

    # ========================================================================
    # Channel fan-out
    # ========================================================================

    def on_channel_updated(self, channel: Channel, message: str) -> FanoutResult:
        """
        Send a channel notification to every enabled subscriber.

        Each call is a distinct event, so no idempotency check is made.

        Args:
            channel: Persisted channel
            message: Notification text

        Returns:
            FanoutResult (skipped is always 0)
        """
        channel_id = channel.id
        channel_guid = channel.guid
        subscriber_ids = [
            sub.user_id for sub in self.subscriptions.find_subscribers(channel_id)
        ]
        result = FanoutResult(subscribers=len(subscriber_ids))

        for user_id in subscriber_ids:
            try:
                self.notifications.create_notification(
                    user_id=user_id,
                    type=NotificationType.CHANNEL.value,
                    message=message,
                    channel_id=channel_id,
                )
                result.created += 1
            except SQLAlchemyError as e:
                self.db.rollback()
                result.failed += 1
                logger.error(
                    f"Failed to create channel notification: {e}",
                    extra={"channel_guid": channel_guid, "user_id": user_id},
                )

        logger.info(
            "Channel fan-out complete",
            extra={"channel_guid": channel_guid, "fanout": result.to_dict()},
        )
        return result

    # ========================================================================
    # Scheduled sweep
    # ========================================================================

    def sweep_recent_videos(self, since_hours: Optional[int] = None) -> Dict[str, Any]:
        """
        Re-run video fan-out for every video ingested in the window.

        Completes fan-outs that partially failed earlier; subscribers that
        were already notified are skipped.

        Args:
            since_hours: Window size (defaults to FANOUT_SWEEP_HOURS)

        Returns:
            Dict with videos_checked and the summed fan-out counts
        """
        hours = since_hours if since_hours is not None else self.settings.fanout_sweep_hours
        since = datetime.utcnow() - timedelta(hours=hours)

        video_ids = [
            row.id
            for row in (
                self.db.query(Video.id)
                .filter(Video.created_at >= since)
                .order_by(Video.created_at.asc(), Video.id.asc())
                .all()
            )
        ]

        totals = FanoutResult()
        for video_id in video_ids:
            video = self.db.query(Video).filter(Video.id == video_id).first()
            if video is None:
                # Deleted while the sweep was running
                continue
            result = self.on_video_ingested(video)
            totals.subscribers += result.subscribers
            totals.created += result.created
            totals.skipped += result.skipped
            totals.failed += result.failed

        summary = {"videos_checked": len(video_ids), "since_hours": hours, **totals.to_dict()}
        logger.info("Fan-out sweep complete", extra={"fanout": summary})
        return summary
