"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions
- Unread count cache
- Sample data factories (users, channels, videos, subscriptions, notifications)
- FastAPI test client authenticated as a chosen user
"""

import os
import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

_TEST_JWT_SECRET = "test-jwt-secret-key-for-fanhub-unit-tests-0123456789"

# Set test environment variables before importing app modules
os.environ['FANHUB_DB_URL'] = 'sqlite:///:memory:'
os.environ['FANHUB_ENV'] = 'test'
os.environ['JWT_SECRET_KEY'] = _TEST_JWT_SECRET
os.environ['UNREAD_COUNT_CACHE_TTL'] = '0'

from backend.src.models import (
    Base,
    User,
    Channel,
    Video,
    ChannelSubscription,
    Notification,
    NotificationType,
)
from backend.src.db.database import init_db
from backend.src.utils.cache import UnreadCountCache, init_unread_count_cache


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    from sqlalchemy import event

    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraints for SQLite
    # This must be set for each connection
    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute('pragma foreign_keys=ON')

    event.listen(engine, 'connect', _fk_pragma_on_connect)

    init_db(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Utility Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_unread_count_cache():
    """Give every test a fresh, disabled process-wide cache."""
    yield init_unread_count_cache(ttl_seconds=0)
    init_unread_count_cache(ttl_seconds=0)


@pytest.fixture
def unread_cache():
    """An enabled cache, for tests that exercise cached counts."""
    return UnreadCountCache(ttl_seconds=60)


@pytest.fixture
def test_settings():
    """Application settings with defaults (no .env file)."""
    from backend.src.config.settings import AppSettings
    return AppSettings(_env_file=None)


@pytest.fixture
def jwt_secret():
    return _TEST_JWT_SECRET


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def create_user(test_db_session):
    """Factory for creating users."""
    _counter = [0]

    def _create(email=None, display_name=None, is_admin=False, is_active=True):
        _counter[0] += 1
        user = User(
            email=email or f"fan{_counter[0]}@example.com",
            display_name=display_name or f"Fan {_counter[0]}",
            is_admin=is_admin,
            is_active=is_active,
        )
        test_db_session.add(user)
        test_db_session.commit()
        test_db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def test_user(create_user):
    return create_user(email="viewer@example.com", display_name="Viewer")


@pytest.fixture
def other_user(create_user):
    return create_user(email="other@example.com", display_name="Other")


@pytest.fixture
def admin_user(create_user):
    return create_user(email="admin@example.com", display_name="Admin", is_admin=True)


@pytest.fixture
def create_channel(test_db_session):
    """Factory for creating channels."""
    _counter = [0]

    def _create(title=None, external_id=None, platform="youtube"):
        _counter[0] += 1
        channel = Channel(
            external_id=external_id or f"UC_test_channel_{_counter[0]}",
            title=title or f"Channel {_counter[0]}",
            platform=platform,
        )
        test_db_session.add(channel)
        test_db_session.commit()
        test_db_session.refresh(channel)
        return channel
    return _create


@pytest.fixture
def test_channel(create_channel):
    return create_channel(title="Match Day TV", external_id="UC_matchday")


@pytest.fixture
def create_video(test_db_session, test_channel):
    """Factory for creating videos (defaults to test_channel)."""
    _counter = [0]

    def _create(channel=None, title=None, external_id=None, created_at=None):
        _counter[0] += 1
        video = Video(
            channel_id=(channel or test_channel).id,
            external_id=external_id or f"vid-ext-{_counter[0]}",
            title=title or f"Highlights {_counter[0]}",
        )
        if created_at is not None:
            video.created_at = created_at
        test_db_session.add(video)
        test_db_session.commit()
        test_db_session.refresh(video)
        return video
    return _create


@pytest.fixture
def create_subscription(test_db_session, test_channel):
    """Factory for creating channel subscriptions."""
    def _create(user, channel=None, notifications_enabled=True):
        subscription = ChannelSubscription(
            user_id=user.id,
            channel_id=(channel or test_channel).id,
            notifications_enabled=notifications_enabled,
        )
        test_db_session.add(subscription)
        test_db_session.commit()
        test_db_session.refresh(subscription)
        return subscription
    return _create


@pytest.fixture
def create_notification(test_db_session, test_user):
    """Factory for creating notifications directly in the database."""
    def _create(
        user=None,
        type=NotificationType.SYSTEM.value,
        message="Test notification",
        channel=None,
        video=None,
        is_read=False,
        read_at=None,
        created_at=None,
    ):
        notification = Notification(
            user_id=(user or test_user).id,
            type=type,
            message=message,
            channel_id=channel.id if channel is not None else None,
            video_id=video.id if video is not None else None,
            is_read=is_read,
            read_at=read_at if read_at is not None else (datetime.utcnow() if is_read else None),
        )
        if created_at is not None:
            notification.created_at = created_at
        test_db_session.add(notification)
        test_db_session.commit()
        test_db_session.refresh(notification)
        return notification
    return _create


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================

def _context_for(user):
    from backend.src.middleware.context import UserContext
    return UserContext(
        user_id=user.id,
        user_guid=user.guid,
        user_email=user.email,
        is_admin=user.is_admin,
    )


@pytest.fixture
def unauthenticated_client(test_db_session):
    """Test client with the test database but real authentication."""
    from fastapi.testclient import TestClient
    from backend.src.main import app, limiter
    from backend.src.db.database import get_db

    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db
    limiter.enabled = False

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def act_as(unauthenticated_client):
    """Switch the authenticated caller of the test client."""
    from backend.src.main import app
    from backend.src.middleware.context import get_user_context

    def _act_as(user):
        ctx = _context_for(user)
        app.dependency_overrides[get_user_context] = lambda: ctx
        return unauthenticated_client
    return _act_as


@pytest.fixture
def test_client(act_as, test_user):
    """Test client authenticated as test_user."""
    return act_as(test_user)


@pytest.fixture
def admin_client(act_as, admin_user):
    """Test client authenticated as admin_user."""
    return act_as(admin_user)
