"""add job tracking tables

Revision ID: 002_job_tracking
Revises: 001_initial_schema
Create Date: 2025-10-15 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002_job_tracking'
down_revision = '001_initial_schema'
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    """
    Create job tracking tables for background imports.

    Tables created:
    - job_runs: One row per queued workbook import
    - job_progress: Progress history for each job
    """

    op.create_table(
        'job_runs',
        sa.Column('job_id', sa.String(length=255), nullable=False, comment='Celery task id, assigned by the API'),
        sa.Column('job_type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('started_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('params', JSON_TYPE, nullable=False),
        sa.Column('result', JSON_TYPE, nullable=True),
        sa.Column('error', JSON_TYPE, nullable=True, comment='Fatal message and traceback of a failed import'),
        sa.Column('created_by', sa.String(length=255), nullable=True, comment='API key owner that queued the upload'),
        sa.CheckConstraint("status IN ('pending', 'processing', 'success', 'failed')", name='job_runs_status_check'),
        sa.CheckConstraint("job_type IN ('import')", name='job_runs_job_type_check'),
        sa.PrimaryKeyConstraint('job_id'),
        comment='Queued patent register imports'
    )

    op.create_index('idx_job_runs_status', 'job_runs', ['status'])
    op.create_index('idx_job_runs_created_at', 'job_runs', ['created_at'])

    op.create_table(
        'job_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_id', sa.String(length=255), nullable=False),
        sa.Column('stage', sa.String(length=50), nullable=False, comment='reading, mapping, rows, complete or failed'),
        sa.Column('percent', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['job_runs.job_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_index('idx_job_progress_job_id', 'job_progress', ['job_id'])
    op.create_index('idx_job_progress_timestamp', 'job_progress', ['timestamp'])


def downgrade() -> None:
    """
    Remove job tracking tables.
    """
    op.drop_index('idx_job_progress_timestamp', table_name='job_progress')
    op.drop_index('idx_job_progress_job_id', table_name='job_progress')
    op.drop_table('job_progress')

    op.drop_index('idx_job_runs_created_at', table_name='job_runs')
    op.drop_index('idx_job_runs_status', table_name='job_runs')
    op.drop_table('job_runs')
