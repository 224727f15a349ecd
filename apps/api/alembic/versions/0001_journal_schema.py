"""journal documents, status summaries and accountability pairs

Revision ID: 0001
Revises: 
Create Date: 2026-02-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'app_user',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('timezone', sa.Text(), nullable=True),
        sa.Column('account_start_date', sa.Date(), nullable=True),
    )
    op.create_index('ix_app_user_email', 'app_user', ['email'], unique=True)

    op.create_table(
        'journal_document',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('doc_type', sa.Text(), nullable=False),
        sa.Column('doc_key', sa.Text(), nullable=False),
        sa.Column('schema_version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('content', postgresql.JSONB(), nullable=False),
        sa.Column('client_updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('server_received_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('device_id', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.UniqueConstraint('user_id', 'doc_type', 'doc_key', name='uq_journal_document_user_type_key'),
    )
    op.create_index('ix_journal_document_user_id', 'journal_document', ['user_id'])
    # Pull watermark scans
    op.create_index('ix_journal_document_user_received', 'journal_document', ['user_id', 'server_received_at'])

    op.create_table(
        'daily_status_summary',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('day_closed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('one_thing_done', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('reflection_present', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.UniqueConstraint('user_id', 'date', name='uq_daily_status_summary_user_date'),
    )
    op.create_index('ix_daily_status_summary_user_id', 'daily_status_summary', ['user_id'])

    op.create_table(
        'accountability_pair',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('partner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ),
        sa.ForeignKeyConstraint(['partner_id'], ['app_user.id'], ),
    )
    op.create_index('ix_accountability_pair_user_id', 'accountability_pair', ['user_id'])
    op.create_index('ix_accountability_pair_partner_id', 'accountability_pair', ['partner_id'])


def downgrade() -> None:
    op.drop_index('ix_accountability_pair_partner_id', table_name='accountability_pair')
    op.drop_index('ix_accountability_pair_user_id', table_name='accountability_pair')
    op.drop_table('accountability_pair')
    op.drop_index('ix_daily_status_summary_user_id', table_name='daily_status_summary')
    op.drop_table('daily_status_summary')
    op.drop_index('ix_journal_document_user_received', table_name='journal_document')
    op.drop_index('ix_journal_document_user_id', table_name='journal_document')
    op.drop_table('journal_document')
    op.drop_index('ix_app_user_email', table_name='app_user')
    op.drop_table('app_user')
