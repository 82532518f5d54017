"""
Tests for the admin ingestion and system notification endpoints.
"""

import pytest

from backend.src.models import Notification, Video


class TestAdminAccess:
    """Non-admin callers are refused."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("post", "/api/admin/channels"),
            ("post", "/api/admin/videos"),
            ("post", "/api/admin/videos/vid_00000000000000000000000000/fanout"),
            ("delete", "/api/admin/videos/vid_00000000000000000000000000"),
            ("post", "/api/admin/notifications/system"),
        ],
    )
    def test_forbidden_for_regular_user(self, test_client, method, path):
        kwargs = {"json": {}} if method == "post" else {}
        response = getattr(test_client, method)(path, **kwargs)

        assert response.status_code == 403


class TestChannelRegistration:
    """Tests for POST /api/admin/channels."""

    def test_register_new_channel(self, admin_client):
        response = admin_client.post(
            "/api/admin/channels",
            json={"external_id": "UC_new", "title": "New Channel"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["guid"].startswith("chn_")
        assert data["created"] is True

    def test_register_existing_channel_updates_title(self, admin_client, test_channel):
        response = admin_client.post(
            "/api/admin/channels",
            json={"external_id": "UC_matchday", "title": "Match Day TV HD"},
        )

        data = response.json()
        assert data["guid"] == test_channel.guid
        assert data["created"] is False
        assert data["title"] == "Match Day TV HD"


class TestVideoIngestion:
    """Tests for POST /api/admin/videos and fan-out re-runs."""

    def test_ingest_fans_out(self, admin_client, test_db_session, test_user, test_channel, create_subscription):
        create_subscription(test_user)

        response = admin_client.post(
            "/api/admin/videos",
            json={
                "channel": test_channel.guid,
                "external_id": "abc123",
                "title": "Derby highlights",
                "published_at": "2026-10-18T20:00:00Z",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["created"] is True
        assert data["video"]["guid"].startswith("vid_")
        assert data["fanout"] == {"subscribers": 1, "created": 1, "skipped": 0, "failed": 0}
        notification = test_db_session.query(Notification).one()
        assert notification.user_id == test_user.id

    def test_ingest_unknown_channel(self, admin_client):
        response = admin_client.post(
            "/api/admin/videos",
            json={"channel": "UC_nobody", "external_id": "abc123", "title": "Derby"},
        )

        assert response.status_code == 404

    def test_ingest_video_of_other_channel(self, admin_client, test_channel, create_channel, create_video):
        create_video(external_id="abc123")
        other = create_channel()

        response = admin_client.post(
            "/api/admin/videos",
            json={"channel": other.guid, "external_id": "abc123", "title": "Derby"},
        )

        assert response.status_code == 400

    def test_rerun_fanout(self, admin_client, test_user, create_subscription, create_video):
        video = create_video()
        create_subscription(test_user)

        response = admin_client.post(f"/api/admin/videos/{video.guid}/fanout")

        assert response.status_code == 200
        assert response.json()["created"] == 1

        again = admin_client.post(f"/api/admin/videos/{video.guid}/fanout")
        assert again.json() == {"subscribers": 1, "created": 0, "skipped": 1, "failed": 0}

    def test_rerun_fanout_unknown_video(self, admin_client):
        response = admin_client.post("/api/admin/videos/vid_" + "0" * 26 + "/fanout")
        assert response.status_code == 404

    def test_delete_video(self, admin_client, test_db_session, test_user, test_channel, create_video, create_notification):
        video = create_video()
        create_notification(type="video", channel=test_channel, video=video)

        response = admin_client.delete(f"/api/admin/videos/{video.guid}")

        assert response.status_code == 200
        assert response.json() == {"notifications_removed": 1}
        assert test_db_session.query(Video).count() == 0


class TestSystemNotifications:
    """Tests for POST /api/admin/notifications/system."""

    def test_broadcast_to_active_users(self, admin_client, test_db_session, test_user, other_user, create_user):
        create_user(is_active=False)

        response = admin_client.post(
            "/api/admin/notifications/system",
            json={"message": "Maintenance tonight"},
        )

        assert response.status_code == 201
        # test_user, other_user and the admin caller
        assert response.json() == {"created": 3}
        assert test_db_session.query(Notification).filter_by(type="system").count() == 3

    def test_single_recipient(self, admin_client, test_db_session, test_user, other_user):
        response = admin_client.post(
            "/api/admin/notifications/system",
            json={"message": "Welcome", "user_guid": test_user.guid},
        )

        assert response.json() == {"created": 1}
        notification = test_db_session.query(Notification).one()
        assert notification.user_id == test_user.id

    def test_unknown_recipient(self, admin_client):
        response = admin_client.post(
            "/api/admin/notifications/system",
            json={"message": "Welcome", "user_guid": "usr_" + "0" * 26},
        )

        assert response.status_code == 404

    def test_blank_message_rejected(self, admin_client):
        response = admin_client.post(
            "/api/admin/notifications/system",
            json={"message": "   "},
        )

        assert response.status_code == 422
