"""init videos, feed_hits and collector_runs tables

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19 00:00:01

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'videos',
        sa.Column('video_id', sa.Text(), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('channel_id', sa.Text(), nullable=False),
        sa.Column('channel_title', sa.Text(), nullable=False),
        sa.Column('published_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('duration_seconds', sa.Integer(), nullable=False),
        sa.Column('is_short', sa.Boolean(), nullable=False),
        sa.Column('thumbnail_url', sa.Text(), nullable=False, server_default=''),
        sa.Column('view_count', sa.BigInteger(), nullable=False),
        sa.Column('like_count', sa.BigInteger()),
        sa.Column('comment_count', sa.BigInteger()),
        sa.Column('first_seen_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()')),
        sa.Column('last_seen_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()')),
    )
    op.create_index('ix_videos_is_short', 'videos', ['is_short'])

    op.create_table(
        'feed_hits',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('run_id', sa.String(36), nullable=False),
        sa.Column('video_id', sa.Text(), nullable=False),
        sa.Column('region_code', sa.String(2), nullable=False),
        sa.Column('category_id', sa.String(16), nullable=False),
        sa.Column('views_per_hour', sa.Float(), nullable=False),
        sa.Column('bucket', sa.String(16), nullable=False),
        sa.Column('niche_tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('seen_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()')),
        sa.UniqueConstraint('run_id', 'video_id', 'region_code', 'category_id', name='uq_feed_hits_run_video_region_category'),
    )
    op.create_index('ix_feed_hits_video_id', 'feed_hits', ['video_id'])
    op.create_index('ix_feed_hits_region_code', 'feed_hits', ['region_code'])
    op.create_index('ix_feed_hits_bucket', 'feed_hits', ['bucket'])
    op.create_index('ix_feed_hits_seen_at', 'feed_hits', ['seen_at'])
    op.create_index('idx_feed_hits_vph', 'feed_hits', ['views_per_hour'])
    # Niche filter on the trending endpoint
    op.execute("CREATE INDEX IF NOT EXISTS idx_feed_hits_niche_tags ON feed_hits USING GIN (niche_tags)")

    op.create_table(
        'collector_runs',
        sa.Column('run_id', sa.String(36), primary_key=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='running'),
        sa.Column('started_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()')),
        sa.Column('finished_at', sa.TIMESTAMP(timezone=True)),
        sa.Column('error', sa.Text()),
        sa.Column('videos_processed', sa.Integer()),
        sa.Column('feed_hits_created', sa.Integer()),
    )
    op.create_index('ix_collector_runs_status', 'collector_runs', ['status'])


def downgrade() -> None:
    op.drop_index('ix_collector_runs_status', table_name='collector_runs')
    op.drop_table('collector_runs')
    op.drop_index('idx_feed_hits_niche_tags', table_name='feed_hits')
    op.drop_index('idx_feed_hits_vph', table_name='feed_hits')
    op.drop_index('ix_feed_hits_seen_at', table_name='feed_hits')
    op.drop_index('ix_feed_hits_bucket', table_name='feed_hits')
    op.drop_index('ix_feed_hits_region_code', table_name='feed_hits')
    op.drop_index('ix_feed_hits_video_id', table_name='feed_hits')
    op.drop_table('feed_hits')
    op.drop_index('ix_videos_is_short', table_name='videos')
    op.drop_table('videos')
