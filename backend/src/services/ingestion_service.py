"""
Video ingestion boundary.

The platform importer (or an admin) pushes channels and videos into the
service here. Registration is idempotent on the platform external id, and
ingesting a video triggers the subscriber fan-out.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from backend.src.models.channel import Channel
from backend.src.models.notification import Notification
from backend.src.models.video import Video
from backend.src.services.exceptions import ValidationError
from backend.src.services.fanout_service import FanoutResult, FanoutService
from backend.src.utils.cache import UnreadCountCache, get_unread_count_cache
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

TITLE_MAX_LENGTH = 500


class VideoIngestionService:
    """
    Service for registering channels and videos pushed by the importer.
    """

    def __init__(
        self,
        db: Session,
        fanout_service: Optional[FanoutService] = None,
        cache: Optional[UnreadCountCache] = None,
    ):
        self.db = db
        self.fanout = fanout_service or FanoutService(db)
        self.cache = cache if cache is not None else get_unread_count_cache()

    # ========================================================================
    # Channels
    # ========================================================================

    def register_channel(
        self,
        external_id: str,
        title: str,
        platform: str = "youtube",
    ) -> Tuple[Channel, bool]:
        """
        Create a channel, or update the title of an existing one.

        Args:
            external_id: Platform channel id
            title: Display title
            platform: Source platform

        Returns:
            Tuple of (channel, created)

        Raises:
            ValidationError: If external_id or title is empty
        """
        if not external_id or not external_id.strip():
            raise ValidationError("Channel external_id is required", field="external_id")
        if not title or not title.strip():
            raise ValidationError("Channel title is required", field="title")

        external_id = external_id.strip()
        channel = (
            self.db.query(Channel)
            .filter(Channel.external_id == external_id)
            .first()
        )

        if channel is not None:
            if channel.title != title:
                channel.title = title
                self.db.commit()
                self.db.refresh(channel)
            return channel, False

        channel = Channel(external_id=external_id, title=title, platform=platform)
        self.db.add(channel)
        self.db.commit()
        self.db.refresh(channel)

        logger.info(
            "Registered channel",
            extra={"channel_guid": channel.guid, "external_id": external_id},
        )
        return channel, True

    # ========================================================================
    # Videos
    # ========================================================================

    def register_video(
        self,
        channel: Channel,
        external_id: str,
        title: str,
        thumbnail_url: Optional[str] = None,
        published_at: Optional[datetime] = None,
    ) -> Tuple[Video, bool]:
        """
        Store a video for a channel, idempotent on its external id.

        An existing video is returned unchanged.

        Returns:
            Tuple of (video, created)

        Raises:
            ValidationError: If external_id or title is empty, or the
                external id already belongs to another channel
        """
        if not external_id or not external_id.strip():
            raise ValidationError("Video external_id is required", field="external_id")
        if not title or not title.strip():
            raise ValidationError("Video title is required", field="title")

        external_id = external_id.strip()
        video = self.db.query(Video).filter(Video.external_id == external_id).first()

        if video is not None:
            if video.channel_id != channel.id:
                raise ValidationError(
                    f"Video {external_id} belongs to another channel",
                    field="external_id",
                )
            return video, False

        video = Video(
            channel_id=channel.id,
            external_id=external_id,
            title=title[:TITLE_MAX_LENGTH],
            thumbnail_url=thumbnail_url,
            published_at=published_at,
        )
        self.db.add(video)
        self.db.commit()
        self.db.refresh(video)

        logger.info(
            "Registered video",
            extra={
                "video_guid": video.guid,
                "channel_guid": channel.guid,
                "external_id": external_id,
            },
        )
        return video, True

    def ingest_video(
        self,
        channel: Channel,
        external_id: str,
        title: str,
        thumbnail_url: Optional[str] = None,
        published_at: Optional[datetime] = None,
    ) -> Tuple[Video, bool, FanoutResult]:
        """
        Register a video and fan it out to the channel's subscribers.

        Fan-out also runs for an already known video, so a retried push
        completes a fan-out that failed part way.

        Returns:
            Tuple of (video, created, fan-out result)
        """
        video, created = self.register_video(
            channel,
            external_id=external_id,
            title=title,
            thumbnail_url=thumbnail_url,
            published_at=published_at,
        )
        result = self.fanout.on_video_ingested(video)
        return video, created, result

    def delete_video(self, guid: str) -> int:
        """
        Delete a video together with the notifications that reference it.

        Returns:
            Number of notifications removed

        Raises:
            NotFoundError: If the video does not exist
        """
        video = self.fanout.get_video_by_guid(guid)

        affected_user_ids: List[int] = [
            row.user_id
            for row in (
                self.db.query(Notification.user_id)
                .filter(Notification.video_id == video.id)
                .distinct()
                .all()
            )
        ]
        removed = (
            self.db.query(Notification)
            .filter(Notification.video_id == video.id)
            .delete(synchronize_session=False)
        )

        self.db.delete(video)
        self.db.commit()
        self.cache.invalidate_many(affected_user_ids)

        logger.info(
            "Deleted video",
            extra={"video_guid": guid, "notifications_removed": removed},
        )
        return removed
