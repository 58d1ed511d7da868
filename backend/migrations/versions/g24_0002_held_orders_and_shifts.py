"""held orders and cashier shifts

Revision ID: g24_0002
Revises: g24_0001
Create Date: 2026-10-19 12:00:00.000000

Adds:
- held_orders: parked carts with priced line snapshots
- shifts: cashier shifts owning the cash drawer (opening/expected/closing balances)
- cash_drawer_events: drawer audit trail (shift open/close, no-sale, cash in/out)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'g24_0002'
down_revision = 'g24_0001'
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # held_orders: Parked carts (no stock reservation)
    # ============================================================================
    op.create_table(
        'held_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(op.f('ix_held_orders_created_at'), 'held_orders', ['created_at'])

    # ============================================================================
    # shifts: One OPEN shift at a time; closed shifts are immutable
    # ============================================================================
    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cashier', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('opening_balance', sa.Integer(), nullable=False),
        sa.Column('expected_balance', sa.Integer(), nullable=False),
        sa.Column('closing_balance', sa.Integer(), nullable=True),
        sa.Column('variance', sa.Integer(), nullable=True),
        sa.Column('total_sales', sa.Integer(), nullable=False),
        sa.Column('total_transactions', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(op.f('ix_shifts_status'), 'shifts', ['status'])
    op.create_index(op.f('ix_shifts_started_at'), 'shifts', ['started_at'])

    # ============================================================================
    # cash_drawer_events: Drawer audit trail with the balance after each event
    # ============================================================================
    op.create_table(
        'cash_drawer_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=True),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=True),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(op.f('ix_cash_drawer_events_shift_id'), 'cash_drawer_events', ['shift_id'])
    op.create_index(op.f('ix_cash_drawer_events_event_type'), 'cash_drawer_events', ['event_type'])
    op.create_index('ix_drawer_events_shift_occurred', 'cash_drawer_events', ['shift_id', 'occurred_at'])


def downgrade():
    op.drop_table('cash_drawer_events')
    op.drop_table('shifts')
    op.drop_table('held_orders')
