"""
Unit tests for VideoIngestionService.

Tests channel and video registration, ingest-triggered fan-out and video
deletion.
"""

from datetime import datetime

import pytest

from backend.src.models import Channel, Notification, Video
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.fanout_service import FanoutService
from backend.src.services.ingestion_service import VideoIngestionService
from backend.src.services.notification_service import NotificationService


@pytest.fixture
def service(test_db_session, test_settings):
    fanout = FanoutService(test_db_session, settings=test_settings)
    return VideoIngestionService(test_db_session, fanout_service=fanout)


class TestRegisterChannel:
    """Tests for VideoIngestionService.register_channel."""

    def test_creates_channel(self, service):
        channel, created = service.register_channel("UC_new", "New Channel")

        assert created is True
        assert channel.guid.startswith("chn_")
        assert channel.platform == "youtube"

    def test_existing_channel_returned(self, service, test_db_session, test_channel):
        channel, created = service.register_channel("UC_matchday", "Match Day TV")

        assert created is False
        assert channel.id == test_channel.id
        assert test_db_session.query(Channel).count() == 1

    def test_existing_channel_title_updated(self, service, test_channel):
        channel, created = service.register_channel("UC_matchday", "Match Day TV HD")

        assert created is False
        assert channel.title == "Match Day TV HD"

    def test_requires_external_id_and_title(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.register_channel(" ", "Title")
        assert exc_info.value.field == "external_id"

        with pytest.raises(ValidationError) as exc_info:
            service.register_channel("UC_x", "")
        assert exc_info.value.field == "title"


class TestRegisterVideo:
    """Tests for VideoIngestionService.register_video."""

    def test_creates_video(self, service, test_channel):
        published = datetime(2026, 10, 18, 20, 0, 0)
        video, created = service.register_video(
            test_channel,
            external_id="dQw4w9WgXcQ",
            title="Derby highlights",
            thumbnail_url="https://img.example.com/derby.jpg",
            published_at=published,
        )

        assert created is True
        assert video.guid.startswith("vid_")
        assert video.channel_id == test_channel.id
        assert video.published_at == published

    def test_idempotent_on_external_id(self, service, test_db_session, test_channel):
        first, _ = service.register_video(test_channel, "abc123", "Derby highlights")
        second, created = service.register_video(test_channel, "abc123", "Other title")

        assert created is False
        assert second.id == first.id
        assert second.title == "Derby highlights"
        assert test_db_session.query(Video).count() == 1

    def test_external_id_of_other_channel_rejected(self, service, test_channel, create_channel):
        other = create_channel()
        service.register_video(test_channel, "abc123", "Derby highlights")

        with pytest.raises(ValidationError):
            service.register_video(other, "abc123", "Derby highlights")

    def test_requires_title(self, service, test_channel):
        with pytest.raises(ValidationError):
            service.register_video(test_channel, "abc123", "   ")


class TestIngestVideo:
    """Tests for VideoIngestionService.ingest_video."""

    def test_new_video_fans_out(self, service, test_db_session, test_user, test_channel, create_subscription):
        create_subscription(test_user)

        video, created, result = service.ingest_video(test_channel, "abc123", "Derby highlights")

        assert created is True
        assert result.created == 1
        notification = test_db_session.query(Notification).one()
        assert notification.video_id == video.id
        assert notification.message == "New video from Match Day TV: Derby highlights"

    def test_repeated_push_completes_without_duplicates(
        self, service, test_db_session, test_user, other_user, test_channel, create_subscription
    ):
        create_subscription(test_user)
        service.ingest_video(test_channel, "abc123", "Derby highlights")
        create_subscription(other_user)

        _, created, result = service.ingest_video(test_channel, "abc123", "Derby highlights")

        assert created is False
        assert result.created == 1
        assert result.skipped == 1
        assert test_db_session.query(Notification).count() == 2


class TestDeleteVideo:
    """Tests for VideoIngestionService.delete_video."""

    def test_removes_video_and_notifications(
        self, test_db_session, test_settings, test_user, test_channel,
        create_subscription, create_notification, unread_cache,
    ):
        notifications = NotificationService(test_db_session, settings=test_settings, cache=unread_cache)
        fanout = FanoutService(test_db_session, notification_service=notifications, settings=test_settings)
        service = VideoIngestionService(test_db_session, fanout_service=fanout, cache=unread_cache)

        create_subscription(test_user)
        video, _, _ = service.ingest_video(test_channel, "abc123", "Derby highlights")
        create_notification(message="unrelated")
        assert notifications.get_unread_count(test_user.id) == 2

        removed = service.delete_video(video.guid)

        assert removed == 1
        assert test_db_session.query(Video).count() == 0
        assert test_db_session.query(Notification).count() == 1
        assert notifications.get_unread_count(test_user.id) == 1

    def test_unknown_video(self, service):
        with pytest.raises(NotFoundError):
            service.delete_video("vid_" + "0" * 26)
