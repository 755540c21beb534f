from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'journey_events',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('journey_id', sa.String(128), nullable=False, index=True),
        sa.Column('visitor_id', sa.String(128), index=True),
        sa.Column('ip_address', sa.String(64), index=True),
        sa.Column('user_agent', sa.Text),
        sa.Column('event_type', sa.String(64), nullable=False, index=True),
        sa.Column('page_url', sa.Text),
        sa.Column('referrer', sa.Text),
        sa.Column('intent_type', sa.String(64)),
        sa.Column('cta_label', sa.String(256)),
        sa.Column('device_type', sa.String(32)),
        sa.Column('occurred_at', sa.DateTime, index=True),
        sa.Column('metadata', sa.JSON),
        sa.Column('site_id', sa.Integer, index=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_index('ix_journey_events_journey_ts', 'journey_events', ['journey_id', 'occurred_at'])
    op.create_index('ix_journey_events_ip_ts', 'journey_events', ['ip_address', 'occurred_at'])
    op.create_index('ix_journey_events_site_ip', 'journey_events', ['site_id', 'ip_address'])

    op.create_table(
        'journeys',
        sa.Column('journey_id', sa.String(160), primary_key=True),
        sa.Column('visitor_id', sa.String(128), index=True),
        sa.Column('visit_number', sa.Integer, nullable=False),
        sa.Column('first_seen', sa.DateTime, nullable=False, index=True),
        sa.Column('last_seen', sa.DateTime, nullable=False, index=True),
        sa.Column('entry_page', sa.Text),
        sa.Column('entry_referrer', sa.Text),
        sa.Column('initial_intent', sa.String(64)),
        sa.Column('page_sequence', sa.JSON, nullable=False),
        sa.Column('event_count', sa.Integer, nullable=False),
        sa.Column('outcome', sa.String(48), nullable=False, index=True),
        sa.Column('outcome_detail', sa.JSON, nullable=False),
        sa.Column('time_to_action', sa.Integer),
        sa.Column('loops', sa.JSON, nullable=False),
        sa.Column('friction', sa.JSON, nullable=False),
        sa.Column('confidence', sa.Integer, nullable=False, index=True),
        sa.Column('engagement_metrics', sa.JSON, nullable=False),
        sa.Column('is_bot', sa.Boolean, nullable=False, index=True),
        sa.Column('bot_score', sa.Integer, nullable=False, index=True),
        sa.Column('bot_type', sa.String(32), index=True),
        sa.Column('bot_signals', sa.JSON, nullable=False),
        sa.Column('site_id', sa.Integer, index=True),
        sa.Column('primary_ip_address', sa.String(64), index=True),
    )
    op.create_index('ix_journeys_site_first_seen', 'journeys', ['site_id', 'first_seen'])


def downgrade():
    op.drop_index('ix_journeys_site_first_seen', table_name='journeys')
    op.drop_table('journeys')
    op.drop_index('ix_journey_events_site_ip', table_name='journey_events')
    op.drop_index('ix_journey_events_ip_ts', table_name='journey_events')
    op.drop_index('ix_journey_events_journey_ts', table_name='journey_events')
    op.drop_table('journey_events')
