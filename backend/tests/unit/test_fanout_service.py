"""
Unit tests for FanoutService.

Tests video fan-out to enabled subscribers, idempotent re-runs, conflict and
failure accounting, channel notifications and the scheduled sweep.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from backend.src.models import Notification
from backend.src.services.exceptions import NotFoundError
from backend.src.services.fanout_service import (
    FanoutResult,
    FanoutService,
    build_video_message,
    is_duplicate_notification,
)
from backend.src.services.notification_service import NotificationService


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fanout(test_db_session, test_settings):
    return FanoutService(test_db_session, settings=test_settings)


def _video_notifications(db, video):
    return (
        db.query(Notification)
        .filter(Notification.video_id == video.id, Notification.type == "video")
        .order_by(Notification.user_id)
        .all()
    )


# ============================================================================
# Test: FanoutResult
# ============================================================================


class TestFanoutResult:
    """Tests for the FanoutResult summary."""

    def test_complete_without_failures(self):
        assert FanoutResult(subscribers=2, created=1, skipped=1).complete is True

    def test_incomplete_with_failures(self):
        assert FanoutResult(subscribers=2, created=1, failed=1).complete is False

    def test_to_dict(self):
        assert FanoutResult(3, 2, 1, 0).to_dict() == {
            "subscribers": 3,
            "created": 2,
            "skipped": 1,
            "failed": 0,
        }


def test_build_video_message():
    """Should name the channel and the video."""
    assert (
        build_video_message("Match Day TV", "Derby highlights")
        == "New video from Match Day TV: Derby highlights"
    )


class _DriverError(Exception):
    """Driver error carrying PostgreSQL-style diagnostics."""

    def __init__(self, constraint_name):
        super().__init__(f"violates constraint {constraint_name}")
        self.diag = type("Diag", (), {"constraint_name": constraint_name})()


class TestIsDuplicateNotification:
    """Tests for classifying integrity errors."""

    def test_named_unique_key(self):
        error = IntegrityError("INSERT", {}, _DriverError("uq_notifications_user_video_type"))
        assert is_duplicate_notification(error) is True

    def test_named_foreign_key(self):
        error = IntegrityError("INSERT", {}, _DriverError("notifications_user_id_fkey"))
        assert is_duplicate_notification(error) is False

    def test_sqlite_messages(self):
        unique = IntegrityError(
            "INSERT", {}, Exception("UNIQUE constraint failed: notifications.user_id")
        )
        foreign = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))

        assert is_duplicate_notification(unique) is True
        assert is_duplicate_notification(foreign) is False


# ============================================================================
# Test: on_video_ingested
# ============================================================================


class TestOnVideoIngested:
    """Tests for FanoutService.on_video_ingested."""

    def test_notifies_enabled_subscriber_only(
        self, fanout, test_db_session, test_user, other_user, create_subscription, create_video
    ):
        """Should notify users with notifications on and skip muted ones."""
        create_subscription(test_user, notifications_enabled=True)
        create_subscription(other_user, notifications_enabled=False)
        video = create_video(title="Derby highlights")

        result = fanout.on_video_ingested(video)

        assert result == FanoutResult(subscribers=1, created=1, skipped=0, failed=0)
        notifications = _video_notifications(test_db_session, video)
        assert [n.user_id for n in notifications] == [test_user.id]
        assert notifications[0].message == "New video from Match Day TV: Derby highlights"
        assert notifications[0].is_read is False
        assert notifications[0].channel_id == video.channel_id

    def test_no_subscribers(self, fanout, test_db_session, create_video):
        """Should create nothing when the channel has no subscribers."""
        video = create_video()

        result = fanout.on_video_ingested(video)

        assert result == FanoutResult()
        assert _video_notifications(test_db_session, video) == []

    def test_ignores_other_channels_subscribers(
        self, fanout, test_db_session, test_user, create_channel, create_subscription, create_video
    ):
        """Should only notify subscribers of the video's own channel."""
        other_channel = create_channel(title="Training Ground")
        create_subscription(test_user, channel=other_channel)
        video = create_video()

        result = fanout.on_video_ingested(video)

        assert result.subscribers == 0
        assert _video_notifications(test_db_session, video) == []

    def test_rerun_is_idempotent(
        self, fanout, test_db_session, test_user, other_user, create_subscription, create_video
    ):
        """Should skip users who already hold the notification."""
        create_subscription(test_user)
        create_subscription(other_user)
        video = create_video()

        first = fanout.on_video_ingested(video)
        second = fanout.on_video_ingested(video)

        assert first.created == 2
        assert second == FanoutResult(subscribers=2, created=0, skipped=2, failed=0)
        assert len(_video_notifications(test_db_session, video)) == 2

    def test_rerun_fills_in_new_subscriber(
        self, fanout, test_db_session, test_user, other_user, create_subscription, create_video
    ):
        """Should notify a user who subscribed after the first run."""
        create_subscription(test_user)
        video = create_video()
        fanout.on_video_ingested(video)

        create_subscription(other_user)
        result = fanout.on_video_ingested(video)

        assert result.created == 1
        assert result.skipped == 1
        assert len(_video_notifications(test_db_session, video)) == 2

    def test_unique_conflict_counted_as_skipped(
        self, fanout, test_db_session, test_user, other_user,
        create_subscription, create_video, create_notification, mocker,
    ):
        """Should roll back a lost insert race and keep going."""
        create_subscription(test_user)
        create_subscription(other_user)
        video = create_video()
        # test_user already notified, but the pre-check misses it
        create_notification(user=test_user, type="video", channel=video.channel, video=video)
        mocker.patch.object(
            FanoutService, "_already_notified_user_ids", return_value=set()
        )

        result = fanout.on_video_ingested(video)

        assert result == FanoutResult(subscribers=2, created=1, skipped=1, failed=0)
        assert {n.user_id for n in _video_notifications(test_db_session, video)} == {
            test_user.id,
            other_user.id,
        }

    def test_foreign_key_violation_counted_as_failed(
        self, fanout, test_db_session, test_user, other_user, create_subscription, create_video, mocker
    ):
        """Should not report a non-duplicate integrity error as already notified."""
        create_subscription(test_user)
        create_subscription(other_user)
        video = create_video()

        real_create = NotificationService.create_notification

        def create_for_vanished_user(self, user_id, **kwargs):
            if user_id == test_user.id:
                raise IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
            return real_create(self, user_id=user_id, **kwargs)

        mocker.patch.object(NotificationService, "create_notification", create_for_vanished_user)

        result = fanout.on_video_ingested(video)

        assert result == FanoutResult(subscribers=2, created=1, skipped=0, failed=1)

    def test_storage_failure_counted_and_isolated(
        self, fanout, test_db_session, test_user, other_user, create_subscription, create_video, mocker
    ):
        """Should count a failed insert without losing the other subscribers."""
        create_subscription(test_user)
        create_subscription(other_user)
        video = create_video()

        real_create = NotificationService.create_notification

        def flaky_create(self, user_id, **kwargs):
            if user_id == test_user.id:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return real_create(self, user_id=user_id, **kwargs)

        mocker.patch.object(NotificationService, "create_notification", flaky_create)

        result = fanout.on_video_ingested(video)

        assert result == FanoutResult(subscribers=2, created=1, skipped=0, failed=1)
        assert result.complete is False
        assert [n.user_id for n in _video_notifications(test_db_session, video)] == [
            other_user.id
        ]

    def test_invalidates_subscriber_cached_counts(
        self, test_db_session, test_settings, test_user, create_subscription, create_video, unread_cache
    ):
        """Should make the new notification visible in a cached unread count."""
        notifications = NotificationService(test_db_session, settings=test_settings, cache=unread_cache)
        fanout = FanoutService(test_db_session, notification_service=notifications, settings=test_settings)
        create_subscription(test_user)
        assert notifications.get_unread_count(test_user.id) == 0

        fanout.on_video_ingested(create_video())

        assert notifications.get_unread_count(test_user.id) == 1


# ============================================================================
# Test: process_video
# ============================================================================


class TestProcessVideo:
    """Tests for FanoutService.process_video."""

    def test_runs_fanout_by_guid(self, fanout, test_user, create_subscription, create_video):
        create_subscription(test_user)
        video = create_video()

        result = fanout.process_video(video.guid)

        assert result.created == 1

    def test_unknown_video(self, fanout):
        with pytest.raises(NotFoundError):
            fanout.process_video("vid_00000000000000000000000000")

    def test_malformed_guid(self, fanout, test_channel):
        with pytest.raises(NotFoundError):
            fanout.process_video(test_channel.guid)


# ============================================================================
# Test: on_channel_updated
# ============================================================================


class TestOnChannelUpdated:
    """Tests for FanoutService.on_channel_updated."""

    def test_sends_channel_notifications(
        self, fanout, test_db_session, test_channel, test_user, other_user, create_subscription
    ):
        """Should send one channel notification per enabled subscriber."""
        create_subscription(test_user)
        create_subscription(other_user, notifications_enabled=False)

        result = fanout.on_channel_updated(test_channel, "Match Day TV is live")

        assert result == FanoutResult(subscribers=1, created=1)
        notification = (
            test_db_session.query(Notification)
            .filter(Notification.type == "channel")
            .one()
        )
        assert notification.user_id == test_user.id
        assert notification.channel_id == test_channel.id
        assert notification.video_id is None

    def test_each_event_is_distinct(self, fanout, test_db_session, test_channel, test_user, create_subscription):
        """Should not deduplicate repeated channel events."""
        create_subscription(test_user)

        fanout.on_channel_updated(test_channel, "Renamed")
        fanout.on_channel_updated(test_channel, "Renamed again")

        count = test_db_session.query(Notification).filter(Notification.type == "channel").count()
        assert count == 2


# ============================================================================
# Test: sweep_recent_videos
# ============================================================================


class TestSweepRecentVideos:
    """Tests for FanoutService.sweep_recent_videos."""

    def test_completes_missed_fanouts_in_window(
        self, fanout, test_db_session, test_user, create_subscription, create_video
    ):
        """Should notify for recent videos and ignore older ones."""
        create_subscription(test_user)
        now = datetime.utcnow()
        recent = create_video(created_at=now - timedelta(hours=2))
        old = create_video(created_at=now - timedelta(days=3))

        summary = fanout.sweep_recent_videos(since_hours=24)

        assert summary == {
            "videos_checked": 1,
            "since_hours": 24,
            "subscribers": 1,
            "created": 1,
            "skipped": 0,
            "failed": 0,
        }
        assert len(_video_notifications(test_db_session, recent)) == 1
        assert _video_notifications(test_db_session, old) == []

    def test_second_sweep_only_skips(self, fanout, test_user, create_subscription, create_video):
        """Should skip everything once all fan-outs are complete."""
        create_subscription(test_user)
        create_video()
        create_video()

        fanout.sweep_recent_videos(since_hours=1)
        summary = fanout.sweep_recent_videos(since_hours=1)

        assert summary["videos_checked"] == 2
        assert summary["created"] == 0
        assert summary["skipped"] == 2

    def test_uses_configured_window(self, fanout, test_settings):
        """Should default to FANOUT_SWEEP_HOURS."""
        summary = fanout.sweep_recent_videos()
        assert summary["since_hours"] == test_settings.fanout_sweep_hours
        assert summary["videos_checked"] == 0
