"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Tables:
- customers
- payments
- queue_entries
- payment_configurations
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ===========================================
    # ENUM TYPES
    # ===========================================
    payment_method_enum = postgresql.ENUM(
        'cash_app', 'paypal', 'cash_in_hand', name='payment_method_enum', create_type=False
    )
    payment_status_enum = postgresql.ENUM(
        'pending', 'confirmed', 'denied', name='payment_status_enum', create_type=False
    )
    queue_entry_status_enum = postgresql.ENUM(
        'waiting', 'in_progress', 'completed', 'cancelled', name='queue_entry_status_enum', create_type=False
    )

    bind = op.get_bind()
    payment_method_enum.create(bind, checkfirst=True)
    payment_status_enum.create(bind, checkfirst=True)
    queue_entry_status_enum.create(bind, checkfirst=True)

    # ===========================================
    # TABLE: customers
    # ===========================================
    op.create_table('customers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_customers_name_created_at', 'customers', ['name', 'created_at'])

    # ===========================================
    # TABLE: payments
    # ===========================================
    op.create_table('payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('status', payment_status_enum, nullable=False),
        sa.Column('external_transaction_id', sa.String(length=255), nullable=True),
        sa.Column('confirmed_by', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payments_customer_status', 'payments', ['customer_id', 'status'])
    op.create_index('ix_payments_status_created_at', 'payments', ['status', 'created_at'])

    # ===========================================
    # TABLE: queue_entries
    # ===========================================
    op.create_table('queue_entries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('payment_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('status', queue_entry_status_enum, nullable=False),
        sa.Column('queued_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('started_by', sa.String(length=100), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_by', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_id')
    )
    op.create_index('ix_queue_entries_status_position', 'queue_entries', ['status', 'position'])
    op.create_index('ix_queue_entries_status_completed_at', 'queue_entries', ['status', 'completed_at'])

    # ===========================================
    # TABLE: payment_configurations
    # ===========================================
    op.create_table('payment_configurations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('payment_url', sa.String(length=500), nullable=True),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('price_per_ride', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('updated_by', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_method')
    )


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign keys)
    op.drop_table('payment_configurations')
    op.drop_table('queue_entries')
    op.drop_table('payments')
    op.drop_table('customers')

    op.execute('DROP TYPE IF EXISTS queue_entry_status_enum')
    op.execute('DROP TYPE IF EXISTS payment_status_enum')
    op.execute('DROP TYPE IF EXISTS payment_method_enum')
