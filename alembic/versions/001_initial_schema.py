"""Initial schema for the patent tracker

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-10-14

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    # Create patents table
    op.create_table(
        'patents',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_number', sa.String(length=64), nullable=False,
                  comment='Natural key used to reconcile spreadsheet rows'),
        sa.Column('title', sa.Text(), server_default='', nullable=False),
        sa.Column('inventors', sa.Text(), server_default='', nullable=False),
        sa.Column('applicants', sa.Text(), server_default='', nullable=False),
        sa.Column('filed_date', sa.String(length=10), nullable=True, comment='ISO date YYYY-MM-DD'),
        sa.Column('published_date', sa.String(length=10), nullable=True, comment='ISO date YYYY-MM-DD'),
        sa.Column('granted_date', sa.String(length=10), nullable=True, comment='ISO date YYYY-MM-DD'),
        sa.Column('status', sa.String(length=255), server_default='Filed', nullable=False,
                  comment='Free-text prosecution status, e.g. Filed, AE, Granted'),
        sa.Column('renewal_due_date', sa.String(length=10), nullable=True, comment='ISO date YYYY-MM-DD'),
        sa.Column('renewal_fee', sa.Numeric(precision=12, scale=2), nullable=True,
                  comment='Renewal fee; never populated by the importer'),
        sa.Column('last_checked', sa.TIMESTAMP(), nullable=True),
        sa.Column('ipindia_status_url', sa.String(length=512), nullable=True),
        sa.Column('google_drive_link', sa.String(length=1024), nullable=True,
                  comment='Hyperlink embedded in the application number cell'),
        sa.Column('patent_number', sa.String(length=128), nullable=True),
        sa.Column('patent_certificate', sa.Text(), nullable=True),
        sa.Column('raw_metadata', JSON_TYPE, nullable=False,
                  comment='Source row provenance: serial no, provisional marker, remarks, agent, details, full row'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        comment='Tracked patent applications'
    )

    op.create_index('idx_patents_application_number', 'patents', ['application_number'])
    op.create_index('idx_patents_status', 'patents', ['status'])
    op.create_index('idx_patents_filed_date', 'patents', ['filed_date'])
    op.create_index('idx_patents_renewal_due_date', 'patents', ['renewal_due_date'])
    op.create_index('idx_patents_title', 'patents', ['title'])

    # Create renewal_payments table
    op.create_table(
        'renewal_payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('patent_id', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.String(length=10), nullable=False, comment='ISO date YYYY-MM-DD'),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), server_default='', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('amount >= 0', name='renewal_payments_amount_check'),
        sa.ForeignKeyConstraint(['patent_id'], ['patents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        comment='Renewal fee payment history'
    )

    op.create_index('idx_renewal_payments_patent_id', 'renewal_payments', ['patent_id'])
    op.create_index('idx_renewal_payments_payment_date', 'renewal_payments', ['payment_date'])

    # Create change_logs table
    op.create_table(
        'change_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('patent_id', sa.Integer(), nullable=False),
        sa.Column('changed_by', sa.String(length=255), nullable=True),
        sa.Column('change_type', sa.String(length=50), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['patent_id'], ['patents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        comment='Patent change history'
    )

    op.create_index('idx_change_logs_patent_id', 'change_logs', ['patent_id'])
    op.create_index('idx_change_logs_timestamp', 'change_logs', ['timestamp'])


def downgrade() -> None:
    op.drop_index('idx_change_logs_timestamp', table_name='change_logs')
    op.drop_index('idx_change_logs_patent_id', table_name='change_logs')
    op.drop_table('change_logs')

    op.drop_index('idx_renewal_payments_payment_date', table_name='renewal_payments')
    op.drop_index('idx_renewal_payments_patent_id', table_name='renewal_payments')
    op.drop_table('renewal_payments')

    op.drop_index('idx_patents_title', table_name='patents')
    op.drop_index('idx_patents_renewal_due_date', table_name='patents')
    op.drop_index('idx_patents_filed_date', table_name='patents')
    op.drop_index('idx_patents_status', table_name='patents')
    op.drop_index('idx_patents_application_number', table_name='patents')
    op.drop_table('patents')
