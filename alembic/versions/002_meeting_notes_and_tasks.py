"""Add meeting notes and tasks tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('meeting_notes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('meeting_id', sa.String(64), nullable=False),
        sa.Column('raw_notes', sa.Text(), nullable=True),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('key_points', sa.JSON(), nullable=True),
        sa.Column('action_items', sa.JSON(), nullable=True),
        sa.Column('decisions_made', sa.JSON(), nullable=True),
        sa.Column('follow_up_topics', sa.JSON(), nullable=True),
        sa.Column('client_concerns', sa.JSON(), nullable=True),
        sa.Column('client_sentiment', sa.String(20), nullable=True),
        sa.Column('compliance_items', sa.JSON(), nullable=True),
        sa.Column('requires_documentation', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('external_attendees', sa.JSON(), nullable=True),
        sa.Column('manually_edited', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('ai_generated_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('updated_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_meeting_notes_meeting', 'meeting_notes', ['organization_id', 'meeting_id'], unique=True)

    op.create_table('tasks',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('priority', sa.String(20), nullable=True, server_default='medium'),
        sa.Column('status', sa.String(20), nullable=True, server_default='pending'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('assigned_to', sa.String(255), nullable=True),
        sa.Column('source_type', sa.String(50), nullable=True),
        sa.Column('source_id', sa.String(64), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tasks_organization', 'tasks', ['organization_id'], unique=False)
    op.create_index('ix_tasks_source', 'tasks', ['source_type', 'source_id'], unique=False)


def downgrade():
    op.drop_index('ix_tasks_source', table_name='tasks')
    op.drop_index('ix_tasks_organization', table_name='tasks')
    op.drop_table('tasks')
    op.drop_index('ix_meeting_notes_meeting', table_name='meeting_notes')
    op.drop_table('meeting_notes')
