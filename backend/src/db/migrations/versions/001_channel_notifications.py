"""Create channel subscription and notification tables.

Revision ID: 001_channel_notifications
Revises:
Create Date: 2026-10-19

- users, channels, videos (GUID-addressed, UUIDv7)
- channel_subscriptions with the (user, channel) unique key and the
  (channel, notifications_enabled) fan-out index
- notifications with type/reference check constraints, the
  (user, video, type) fan-out idempotency key and a partial unread index
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_channel_notifications'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column(dialect: str) -> sa.Column:
    if dialect == 'postgresql':
        return sa.Column('uuid', postgresql.UUID(as_uuid=True), nullable=False)
    # SQLite: use LargeBinary for UUID
    return sa.Column('uuid', sa.LargeBinary(16), nullable=False)


def _now(dialect: str):
    return sa.text('NOW()') if dialect == 'postgresql' else sa.text("(datetime('now'))")


def upgrade() -> None:
    """Create users, channels, videos, channel_subscriptions and notifications."""
    bind = op.get_bind()
    dialect = bind.dialect.name

    # =========================================================================
    # users
    # =========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _uuid_column(dialect),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now(dialect)),
    )
    op.create_index('ix_users_uuid', 'users', ['uuid'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # =========================================================================
    # channels
    # =========================================================================
    op.create_table(
        'channels',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _uuid_column(dialect),
        sa.Column('external_id', sa.String(100), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('platform', sa.String(30), nullable=False, server_default='youtube'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now(dialect)),
    )
    op.create_index('ix_channels_uuid', 'channels', ['uuid'], unique=True)
    op.create_index('ix_channels_external_id', 'channels', ['external_id'], unique=True)

    # =========================================================================
    # videos
    # =========================================================================
    op.create_table(
        'videos',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _uuid_column(dialect),
        sa.Column('external_id', sa.String(100), nullable=False),
        sa.Column(
            'channel_id', sa.Integer(),
            sa.ForeignKey('channels.id', name='fk_videos_channel_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('thumbnail_url', sa.String(1024), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now(dialect)),
    )
    op.create_index('ix_videos_uuid', 'videos', ['uuid'], unique=True)
    op.create_index('ix_videos_external_id', 'videos', ['external_id'], unique=True)
    op.create_index('ix_videos_channel_id', 'videos', ['channel_id'])
    op.create_index('ix_videos_created_at', 'videos', ['created_at'])

    # =========================================================================
    # channel_subscriptions
    # =========================================================================
    op.create_table(
        'channel_subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'user_id', sa.Integer(),
            sa.ForeignKey('users.id', name='fk_channel_subscriptions_user_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'channel_id', sa.Integer(),
            sa.ForeignKey('channels.id', name='fk_channel_subscriptions_channel_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now(dialect)),
        sa.UniqueConstraint('user_id', 'channel_id', name='uq_channel_subscriptions_user_channel'),
    )
    op.create_index(
        'ix_channel_subscriptions_channel_enabled',
        'channel_subscriptions',
        ['channel_id', 'notifications_enabled'],
    )

    # =========================================================================
    # notifications
    # =========================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        _uuid_column(dialect),
        sa.Column(
            'user_id', sa.Integer(),
            sa.ForeignKey('users.id', name='fk_notifications_user_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'channel_id', sa.Integer(),
            sa.ForeignKey('channels.id', name='fk_notifications_channel_id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column(
            'video_id', sa.Integer(),
            sa.ForeignKey('videos.id', name='fk_notifications_video_id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('message', sa.String(500), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now(dialect)),
        sa.UniqueConstraint('user_id', 'video_id', 'type', name='uq_notifications_user_video_type'),
        sa.CheckConstraint("type IN ('video', 'channel', 'system')", name='ck_notifications_type'),
        sa.CheckConstraint("type != 'video' OR video_id IS NOT NULL", name='ck_notifications_video_ref'),
        sa.CheckConstraint("type != 'channel' OR channel_id IS NOT NULL", name='ck_notifications_channel_ref'),
    )
    op.create_index('ix_notifications_uuid', 'notifications', ['uuid'], unique=True)
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_video_id', 'notifications', ['video_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    # Partial index for unread count queries (plain index outside PostgreSQL)
    op.create_index(
        'ix_notifications_user_unread',
        'notifications',
        ['user_id'],
        postgresql_where=sa.text('is_read = false'),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_notifications_user_unread', table_name='notifications')
    op.drop_index('ix_notifications_created_at', table_name='notifications')
    op.drop_index('ix_notifications_video_id', table_name='notifications')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_index('ix_notifications_uuid', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_channel_subscriptions_channel_enabled', table_name='channel_subscriptions')
    op.drop_table('channel_subscriptions')

    op.drop_index('ix_videos_created_at', table_name='videos')
    op.drop_index('ix_videos_channel_id', table_name='videos')
    op.drop_index('ix_videos_external_id', table_name='videos')
    op.drop_index('ix_videos_uuid', table_name='videos')
    op.drop_table('videos')

    op.drop_index('ix_channels_external_id', table_name='channels')
    op.drop_index('ix_channels_uuid', table_name='channels')
    op.drop_table('channels')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_uuid', table_name='users')
    op.drop_table('users')
