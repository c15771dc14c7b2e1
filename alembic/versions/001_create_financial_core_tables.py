"""Create financial core tables

Revision ID: 001_create_financial_core_tables
Revises:
Create Date: 2026-10-16

Work orders, service items, cost ledger, income ledger, profit reports and
the audit and notification sinks. The two partial unique indexes enforce "one final quote"
and "one confirmed report" per work order at the store level.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_financial_core_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade():
    """Create financial core tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'work_orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('internal_no', sa.String(32), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='DRAFT'),
        # Commercial
        sa.Column('operating_company', sa.String(100), nullable=False),
        sa.Column('order_type', sa.String(50), nullable=False),
        sa.Column('payment_terms', sa.String(100), nullable=False),
        sa.Column('customer_company', sa.String(255), nullable=False),
        sa.Column('po', sa.String(100)),
        # Vessel
        sa.Column('vessel_name', sa.String(255), nullable=False),
        sa.Column('imo', sa.String(20), nullable=False),
        sa.Column('vessel_type', sa.String(100)),
        sa.Column('year_built', sa.Integer()),
        sa.Column('gross_tonnage', sa.Integer()),
        sa.Column('vessel_notes', sa.Text()),
        # Location and schedule
        sa.Column('location_type', sa.String(50), nullable=False),
        sa.Column('location_name', sa.String(255), nullable=False),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('responsible_engineer_name', sa.String(200)),
        sa.Column('responsible_ops_name', sa.String(200)),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delete_reason', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_work_orders_internal_no', 'work_orders', ['internal_no'], unique=True)
    op.create_index('ix_work_orders_status', 'work_orders', ['status'])
    op.create_index('ix_work_orders_imo', 'work_orders', ['imo'])
    op.create_index('ix_work_orders_created_by_id', 'work_orders', ['created_by_id'])
    op.create_index('idx_work_orders_active_created', 'work_orders', ['deleted_at', 'created_at'])

    op.create_table(
        'cost_lines',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('work_order_id', sa.String(36), sa.ForeignKey('work_orders.id'), nullable=False),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('unit_price', sa.Numeric(14, 4), nullable=False),
        sa.Column('quantity', sa.Numeric(14, 4), nullable=False),
        sa.Column('line_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('is_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('locked_by_id', sa.String(36), nullable=True),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_cost_lines_work_order_id', 'cost_lines', ['work_order_id'])
    op.create_index('idx_cost_lines_work_order_active', 'cost_lines', ['work_order_id', 'deleted_at'])

    op.create_table(
        'cost_attachments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('work_order_id', sa.String(36), sa.ForeignKey('work_orders.id'), nullable=False),
        sa.Column('cost_line_id', sa.String(36), sa.ForeignKey('cost_lines.id'), nullable=True),
        sa.Column('path', sa.String(500), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('mime_type', sa.String(150), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('uploader_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_cost_attachments_work_order_id', 'cost_attachments', ['work_order_id'])
    op.create_index('ix_cost_attachments_cost_line_id', 'cost_attachments', ['cost_line_id'])

    op.create_table(
        'service_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('work_order_id', sa.String(36), sa.ForeignKey('work_orders.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('equipment_name', sa.String(255), nullable=False),
        sa.Column('model', sa.String(255)),
        sa.Column('serial', sa.String(255)),
        sa.Column('service_content', sa.Text(), nullable=False),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_service_items_work_order_id', 'service_items', ['work_order_id'])
    op.create_index('idx_service_items_work_order_active', 'service_items', ['work_order_id', 'deleted_at'])

    op.create_table(
        'service_item_engineers',
        sa.Column(
            'service_item_id',
            sa.String(36),
            sa.ForeignKey('service_items.id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), primary_key=True),
    )
    op.create_index('ix_service_item_engineers_user_id', 'service_item_engineers', ['user_id'])

    op.create_table(
        'service_attachments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('service_item_id', sa.String(36), sa.ForeignKey('service_items.id'), nullable=False),
        sa.Column('path', sa.String(500), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('mime_type', sa.String(150), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('uploader_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_service_attachments_service_item_id', 'service_attachments', ['service_item_id'])

    op.create_table(
        'quotes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('work_order_id', sa.String(36), sa.ForeignKey('work_orders.id'), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('validity_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_final', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_quotes_work_order_id', 'quotes', ['work_order_id'])
    op.create_index(
        'uq_quotes_final_per_work_order',
        'quotes',
        ['work_order_id'],
        unique=True,
        postgresql_where=sa.text('is_final'),
    )

    op.create_table(
        'invoices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('work_order_id', sa.String(36), sa.ForeignKey('work_orders.id'), nullable=False),
        sa.Column('invoice_no', sa.String(50), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('notes', sa.Text()),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_invoices_work_order_id', 'invoices', ['work_order_id'])
    op.create_index('ix_invoices_invoice_no', 'invoices', ['invoice_no'])

    op.create_table(
        'payment_receipts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('work_order_id', sa.String(36), sa.ForeignKey('work_orders.id'), nullable=False),
        sa.Column(
            'invoice_id',
            sa.String(36),
            sa.ForeignKey('invoices.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('receipt_no', sa.String(50), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('method', sa.String(50), nullable=False),
        sa.Column('reference', sa.String(255)),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_payment_receipts_work_order_id', 'payment_receipts', ['work_order_id'])
    op.create_index('ix_payment_receipts_invoice_id', 'payment_receipts', ['invoice_id'])

    op.create_table(
        'profit_reports',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('work_order_id', sa.String(36), sa.ForeignKey('work_orders.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('revenue_total', sa.Numeric(20, 2), nullable=False),
        sa.Column('cost_total', sa.Numeric(20, 2), nullable=False),
        sa.Column('profit', sa.Numeric(20, 2), nullable=False),
        sa.Column('margin_percent', sa.Numeric(26, 2), nullable=False),
        sa.Column('income_breakdown', sa.JSON(), nullable=False),
        sa.Column('cost_breakdown', sa.JSON(), nullable=False),
        sa.Column('profitability_rating', sa.String(1), nullable=False),
        sa.Column('payment_rating', sa.String(1), nullable=False),
        sa.Column('overall_rating', sa.String(1), nullable=False),
        sa.Column('locked_cost_snapshot', sa.JSON(), nullable=False),
        sa.Column('locked_invoice_snapshot', sa.JSON(), nullable=False),
        sa.Column('confirmed_by_id', sa.String(36), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_profit_reports_work_order_id', 'profit_reports', ['work_order_id'])
    op.create_index(
        'uq_profit_reports_confirmed_per_work_order',
        'profit_reports',
        ['work_order_id'],
        unique=True,
        postgresql_where=sa.text("status = 'CONFIRMED'"),
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('actor_id', sa.String(36), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_log_actor_id', 'audit_log', ['actor_id'])
    op.create_index('ix_audit_log_action', 'audit_log', ['action'])
    op.create_index('ix_audit_log_entity_id', 'audit_log', ['entity_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('recipient', sa.String(255), nullable=False),
        sa.Column('cc', sa.String(255), nullable=True),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('related_work_order_id', sa.String(36), nullable=True),
        sa.Column('created_by_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_related_work_order_id', 'notifications', ['related_work_order_id'])


def downgrade():
    """Drop financial core tables."""
    op.drop_table('notifications')
    op.drop_table('audit_log')
    op.drop_table('profit_reports')
    op.drop_table('payment_receipts')
    op.drop_table('invoices')
    op.drop_table('quotes')
    op.drop_table('cost_attachments')
    op.drop_table('service_attachments')
    op.drop_table('service_item_engineers')
    op.drop_table('service_items')
    op.drop_table('cost_lines')
    op.drop_table('work_orders')
    op.drop_table('users')
