"""Fee schedules, tiers, fee history and event log

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('fee_schedules',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('entity_type', sa.String(20), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('fee_type', sa.String(20), nullable=False, server_default='aum'),
        sa.Column('frequency', sa.String(20), nullable=False, server_default='quarterly'),
        sa.Column('billing_method', sa.String(20), nullable=False, server_default='arrears'),
        sa.Column('minimum_fee', sa.Numeric(12, 2), nullable=True),
        sa.Column('maximum_fee', sa.Numeric(12, 2), nullable=True),
        sa.Column('effective_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_fee_schedules_organization', 'fee_schedules', ['organization_id'], unique=False)
    op.create_index('ix_fee_schedules_entity', 'fee_schedules', ['entity_type', 'entity_id'], unique=False)

    op.create_table('fee_tiers',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('fee_schedule_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('min_value', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('max_value', sa.Numeric(18, 2), nullable=True),
        sa.Column('rate', sa.Numeric(18, 6), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['fee_schedule_id'], ['fee_schedules.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_fee_tiers_schedule', 'fee_tiers', ['fee_schedule_id'], unique=False)

    op.create_table('fee_history',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('fee_schedule_id', sa.String(36), nullable=True),
        sa.Column('entity_type', sa.String(20), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=False),
        sa.Column('billing_period_start', sa.Date(), nullable=False),
        sa.Column('billing_period_end', sa.Date(), nullable=False),
        sa.Column('billable_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('fee_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('effective_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_billed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('billed_at', sa.DateTime(), nullable=True),
        sa.Column('invoice_number', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['fee_schedule_id'], ['fee_schedules.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_fee_history_schedule', 'fee_history', ['fee_schedule_id'], unique=False)
    op.create_index('ix_fee_history_entity', 'fee_history', ['entity_type', 'entity_id'], unique=False)

    op.create_table('event_log',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('actor_type', sa.String(50), nullable=True),
        sa.Column('actor_id', sa.String(64), nullable=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_event_log_organization', 'event_log', ['organization_id'], unique=False)
    op.create_index('ix_event_log_entity', 'event_log', ['entity_type', 'entity_id'], unique=False)
    op.create_index('ix_event_log_timestamp', 'event_log', ['timestamp'], unique=False)


def downgrade():
    op.drop_index('ix_event_log_timestamp', table_name='event_log')
    op.drop_index('ix_event_log_entity', table_name='event_log')
    op.drop_index('ix_event_log_organization', table_name='event_log')
    op.drop_table('event_log')
    op.drop_index('ix_fee_history_entity', table_name='fee_history')
    op.drop_index('ix_fee_history_schedule', table_name='fee_history')
    op.drop_table('fee_history')
    op.drop_index('ix_fee_tiers_schedule', table_name='fee_tiers')
    op.drop_table('fee_tiers')
    op.drop_index('ix_fee_schedules_entity', table_name='fee_schedules')
    op.drop_index('ix_fee_schedules_organization', table_name='fee_schedules')
    op.drop_table('fee_schedules')
