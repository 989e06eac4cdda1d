"""Initial brand foundation schema: business_projects + analyzer_runs

Revision ID: 3f9b6c1d8e24
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9b6c1d8e24'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


IN_FLIGHT_WHERE = sa.text("status IN ('pending', 'running')")


def upgrade() -> None:
    op.create_table(
        'business_projects',
        sa.Column('id', sa.Text(), primary_key=True),

        # -- Meta --
        sa.Column('project_name', sa.Text(), nullable=True),
        sa.Column('website_url', sa.Text(), nullable=True),
        sa.Column('linkedin_url', sa.Text(), nullable=True),

        # -- Core idea --
        sa.Column('idea_name', sa.Text(), nullable=True),
        sa.Column('one_liner', sa.Text(), nullable=True),
        sa.Column('target_audience', sa.JSON(), nullable=True),
        sa.Column('problem_statement', sa.Text(), nullable=True),
        sa.Column('problem_urgency', sa.Integer(), nullable=True),
        sa.Column('why_now', sa.Text(), nullable=True),
        sa.Column('why_now_driver', sa.Text(), nullable=True),

        # -- Value proposition --
        sa.Column('existing_solutions', sa.JSON(), nullable=True),
        sa.Column('differentiation_axis', sa.Text(), nullable=True),
        sa.Column('differentiation_score', sa.Integer(), nullable=True),
        sa.Column('secret_sauce', sa.Text(), nullable=True),
        sa.Column('validation_status', sa.Text(), nullable=True),

        # -- Market reality --
        sa.Column('market_size_estimate', sa.Text(), nullable=True),
        sa.Column('competitors', sa.JSON(), nullable=True),
        sa.Column('positioning', sa.Text(), nullable=True),

        # -- Business model --
        sa.Column('revenue_model', sa.JSON(), nullable=True),
        sa.Column('pricing_tier', sa.Integer(), nullable=True),
        sa.Column('customer_type', sa.Text(), nullable=True),
        sa.Column('sales_motion', sa.Text(), nullable=True),

        # -- Execution --
        sa.Column('team_size', sa.Text(), nullable=True),
        sa.Column('funding_status', sa.Text(), nullable=True),
        sa.Column('timeline_months', sa.Integer(), nullable=True),
        sa.Column('biggest_risks', sa.JSON(), nullable=True),

        # -- Vision & values --
        sa.Column('north_star_metric', sa.Text(), nullable=True),
        sa.Column('company_values', sa.JSON(), nullable=True),
        sa.Column('exit_vision', sa.Text(), nullable=True),

        # -- Website scrape --
        sa.Column('social_urls', sa.JSON(), nullable=True),
        sa.Column('scraped_tagline', sa.Text(), nullable=True),
        sa.Column('scraped_services', sa.JSON(), nullable=True),
        sa.Column('scraped_industry', sa.Text(), nullable=True),
        sa.Column('scraped_content', sa.Text(), nullable=True),
        sa.Column('scrape_confidence', sa.Float(), nullable=True),
        sa.Column('scraped_at', sa.Text(), nullable=True),
        sa.Column('instagram_handle', sa.Text(), nullable=True),
        sa.Column('twitter_handle', sa.Text(), nullable=True),
        sa.Column('facebook_url', sa.Text(), nullable=True),
        sa.Column('tiktok_handle', sa.Text(), nullable=True),
        sa.Column('youtube_url', sa.Text(), nullable=True),

        # -- Analyzer output --
        sa.Column('ai_clarity_score', sa.Integer(), nullable=True),
        sa.Column('ai_one_liner', sa.Text(), nullable=True),
        sa.Column('ai_implied_assumptions', sa.JSON(), nullable=True),
        sa.Column('ai_viability_score', sa.Integer(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('ai_positioning', sa.Text(), nullable=True),
        sa.Column('ai_next_steps', sa.JSON(), nullable=True),
        sa.Column('ai_market_size', sa.Text(), nullable=True),
        sa.Column('ai_competitors', sa.JSON(), nullable=True),
        sa.Column('ai_suggested_model', sa.Text(), nullable=True),
        sa.Column('ai_risks', sa.JSON(), nullable=True),
        sa.Column('ai_strengths', sa.JSON(), nullable=True),
        sa.Column('ai_weaknesses', sa.JSON(), nullable=True),
        sa.Column('ai_voice_traits', sa.JSON(), nullable=True),
        sa.Column('ai_archetype', sa.Text(), nullable=True),

        # -- Derived --
        sa.Column('bucket_completion', sa.JSON(), nullable=True),
        sa.Column('overall_completion', sa.Integer(), server_default='0'),

        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'analyzer_runs',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('project_id', sa.Text(), sa.ForeignKey('business_projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('analyzer_type', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('trigger_reason', sa.Text(), nullable=False, server_default='auto'),
        sa.Column('input_snapshot', sa.JSON(), nullable=True),
        sa.Column('raw_analysis', sa.Text(), nullable=True),
        sa.Column('parsed_fields', sa.JSON(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('pending', 'running', 'completed', 'failed')", name='ck_analyzer_runs_status'),
    )

    # -- Indexes --
    op.create_index('ix_analyzer_runs_project_id', 'analyzer_runs', ['project_id'])
    op.create_index('ix_analyzer_runs_project_type', 'analyzer_runs', ['project_id', 'analyzer_type'])

    # At most one pending/running run per (project, analyzer type)
    op.create_index(
        'uq_analyzer_runs_in_flight', 'analyzer_runs', ['project_id', 'analyzer_type'],
        unique=True,
        postgresql_where=IN_FLIGHT_WHERE,
        sqlite_where=IN_FLIGHT_WHERE,
    )


def downgrade() -> None:
    op.drop_index('uq_analyzer_runs_in_flight', table_name='analyzer_runs')
    op.drop_index('ix_analyzer_runs_project_type', table_name='analyzer_runs')
    op.drop_index('ix_analyzer_runs_project_id', table_name='analyzer_runs')
    op.drop_table('analyzer_runs')
    op.drop_table('business_projects')
