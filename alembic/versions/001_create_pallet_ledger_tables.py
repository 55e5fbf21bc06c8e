"""Create pallet ledger tables

Revision ID: 001_pallet_ledger
Revises:
Create Date: 2026-10-19

Creates the tables of the pallet capacity ledger:
- orders, order_detail: orders and their consignments (estimated pallets)
- inventory_lots: physical receipts (actual pallets)
- delivery_appointments, appointment_detail_lines: the booking ledger
- system_config, system_config_audit: business clock and its audit trail
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_pallet_ledger'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create ledger tables."""

    # ==================== orders ====================
    op.create_table(
        'orders',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('customer_name', sa.String(200), nullable=True),
        sa.Column('appointment_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('warehouse_account', sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)

    # ==================== order_detail ====================
    op.create_table(
        'order_detail',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.BigInteger(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('estimated_pallets', sa.Integer(), nullable=True),
        sa.Column('unbooked_pallets', sa.Integer(), nullable=True),
        sa.Column('remaining_pallets', sa.Integer(), nullable=True),
        sa.Column('po', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_order_detail_order_id', 'order_detail', ['order_id'])

    # ==================== inventory_lots ====================
    op.create_table(
        'inventory_lots',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('order_detail_id', sa.BigInteger(), sa.ForeignKey('order_detail.id', ondelete='CASCADE'), nullable=False),
        sa.Column('lot_number', sa.String(50), nullable=True),
        sa.Column('pallet_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unbooked_pallet_count', sa.Integer(), nullable=True),
        sa.Column('remaining_pallet_count', sa.Integer(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('pallet_count >= 0', name='ck_inventory_lots_pallet_count'),
    )
    op.create_index('ix_inventory_lots_order_detail_id', 'inventory_lots', ['order_detail_id'])

    # ==================== delivery_appointments ====================
    op.create_table(
        'delivery_appointments',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('reference_number', sa.String(50), nullable=False),
        sa.Column('order_id', sa.BigInteger(), sa.ForeignKey('orders.id', ondelete='SET NULL'), nullable=True),
        sa.Column('appointment_account', sa.String(100), nullable=True),
        sa.Column('requested_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmed_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_pallets', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'ix_delivery_appointments_reference_number', 'delivery_appointments',
        ['reference_number'], unique=True
    )
    op.create_index('ix_delivery_appointments_order_id', 'delivery_appointments', ['order_id'])

    # ==================== appointment_detail_lines ====================
    op.create_table(
        'appointment_detail_lines',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            'appointment_id', sa.BigInteger(),
            sa.ForeignKey('delivery_appointments.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column(
            'order_detail_id', sa.BigInteger(),
            sa.ForeignKey('order_detail.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('estimated_pallets', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rejected_pallets', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_pallets_at_time', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('updated_by', sa.String(100), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('appointment_id', 'order_detail_id', name='uq_appointment_line_detail'),
        sa.CheckConstraint('estimated_pallets >= 0', name='ck_line_estimated_pallets'),
        sa.CheckConstraint('rejected_pallets >= 0', name='ck_line_rejected_pallets'),
    )
    op.create_index('ix_appointment_detail_lines_appointment_id', 'appointment_detail_lines', ['appointment_id'])
    op.create_index('ix_appointment_detail_lines_order_detail_id', 'appointment_detail_lines', ['order_detail_id'])

    # ==================== system_config ====================
    op.create_table(
        'system_config',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('config_key', sa.String(100), nullable=False),
        sa.Column('config_value', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_by', sa.String(100), nullable=True),
    )
    op.create_index('ix_system_config_config_key', 'system_config', ['config_key'], unique=True)

    op.create_table(
        'system_config_audit',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('config_key', sa.String(100), nullable=False),
        sa.Column('operation', sa.String(20), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=False),
        sa.Column('interval_minutes', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_system_config_audit_config_key', 'system_config_audit', ['config_key'])


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_table('system_config_audit')
    op.drop_table('system_config')
    op.drop_table('appointment_detail_lines')
    op.drop_table('delivery_appointments')
    op.drop_table('inventory_lots')
    op.drop_table('order_detail')
    op.drop_table('orders')
