from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    columns = [sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()))
    return columns


def _party(name):
    op.create_table(
        name,
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('contact', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps()
    )


def _classification(name):
    op.create_table(
        name,
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True, index=True),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('units', sa.String(20), nullable=False, server_default='meters'),
        *_timestamps()
    )


def upgrade():
    _party('vendors')
    _party('customers')
    _classification('thread_types')
    _classification('fabric_types')

    op.create_table(
        'thread_purchases',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('vendor_id', sa.Integer, sa.ForeignKey('vendors.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('order_date', sa.DateTime, nullable=False),
        sa.Column('thread_type', sa.String(100), nullable=False),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('color_status', sa.String(20), nullable=False, server_default='RAW'),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('unit_of_measure', sa.String(20), nullable=False, server_default='meters'),
        sa.Column('delivery_date', sa.DateTime, nullable=True),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('received', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('received_at', sa.DateTime, nullable=True),
        sa.Column('inventory_status', sa.String(20), nullable=True),
        *_timestamps()
    )

    op.create_table(
        'dyeing_processes',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('thread_purchase_id', sa.Integer, sa.ForeignKey('thread_purchases.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('dye_date', sa.DateTime, nullable=False),
        sa.Column('dye_parameters', sa.JSON, nullable=True),
        sa.Column('color_code', sa.String(20), nullable=True),
        sa.Column('color_name', sa.String(50), nullable=True),
        sa.Column('dye_quantity', sa.Integer, nullable=False),
        sa.Column('output_quantity', sa.Integer, nullable=False),
        sa.Column('labor_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('dye_material_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('total_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('result_status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('completion_date', sa.DateTime, nullable=True),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('inventory_status', sa.String(20), nullable=True),
        *_timestamps()
    )

    op.create_table(
        'inventory',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('item_code', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('product_type', sa.String(20), nullable=False, index=True),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('thread_type_id', sa.Integer, sa.ForeignKey('thread_types.id'), nullable=True),
        sa.Column('fabric_type_id', sa.Integer, sa.ForeignKey('fabric_types.id'), nullable=True),
        sa.Column('current_quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('unit_of_measure', sa.String(20), nullable=False, server_default='meters'),
        sa.Column('cost_per_unit', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('sale_price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('min_stock_level', sa.Integer, nullable=False, server_default='0'),
        sa.Column('location', sa.String(100), nullable=True),
        sa.Column('last_restocked', sa.DateTime, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
        sa.CheckConstraint('current_quantity >= 0', name='ck_inventory_current_quantity_non_negative')
    )

    op.create_table(
        'fabric_productions',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('source_thread_id', sa.Integer, sa.ForeignKey('thread_purchases.id', ondelete='RESTRICT'), nullable=True, index=True),
        sa.Column('dyeing_process_id', sa.Integer, sa.ForeignKey('dyeing_processes.id', ondelete='RESTRICT'), nullable=True, index=True),
        sa.Column('thread_inventory_id', sa.Integer, sa.ForeignKey('inventory.id'), nullable=True),
        sa.Column('fabric_type', sa.String(100), nullable=False),
        sa.Column('dimensions', sa.String(100), nullable=False),
        sa.Column('batch_number', sa.String(50), nullable=False),
        sa.Column('quantity_produced', sa.Integer, nullable=False),
        sa.Column('thread_used', sa.Integer, nullable=False),
        sa.Column('thread_wastage', sa.Integer, nullable=True),
        sa.Column('unit_of_measure', sa.String(20), nullable=False, server_default='meters'),
        sa.Column('production_cost', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('labor_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('total_cost', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('production_date', sa.DateTime, nullable=False),
        sa.Column('completion_date', sa.DateTime, nullable=True),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('inventory_status', sa.String(20), nullable=True),
        *_timestamps()
    )

    op.create_table(
        'sales_orders',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_number', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('customer_id', sa.Integer, sa.ForeignKey('customers.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('order_date', sa.DateTime, nullable=False),
        sa.Column('delivery_date', sa.DateTime, nullable=True),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('tax', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('remarks', sa.Text, nullable=True),
        *_timestamps()
    )

    op.create_table(
        'sales_order_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('sales_order_id', sa.Integer, sa.ForeignKey('sales_orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('inventory_id', sa.Integer, sa.ForeignKey('inventory.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('product_type', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False)
    )

    op.create_table(
        'inventory_transactions',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('inventory_id', sa.Integer, sa.ForeignKey('inventory.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('transaction_type', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('remaining_quantity', sa.Integer, nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('total_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('reference_type', sa.String(50), nullable=True),
        sa.Column('reference_id', sa.Integer, nullable=True),
        sa.Column('thread_purchase_id', sa.Integer, sa.ForeignKey('thread_purchases.id'), nullable=True, index=True),
        sa.Column('dyeing_process_id', sa.Integer, sa.ForeignKey('dyeing_processes.id'), nullable=True, index=True),
        sa.Column('fabric_production_id', sa.Integer, sa.ForeignKey('fabric_productions.id'), nullable=True, index=True),
        sa.Column('sales_order_id', sa.Integer, sa.ForeignKey('sales_orders.id'), nullable=True, index=True),
        sa.Column('transaction_date', sa.DateTime, nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(updated=False)
    )

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('mode', sa.String(20), nullable=False),
        sa.Column('transaction_date', sa.DateTime, nullable=False),
        sa.Column('sales_order_id', sa.Integer, sa.ForeignKey('sales_orders.id'), nullable=True, index=True),
        sa.Column('thread_purchase_id', sa.Integer, sa.ForeignKey('thread_purchases.id'), nullable=True, index=True),
        sa.Column('reference_number', sa.String(100), nullable=True),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('remarks', sa.Text, nullable=True),
        *_timestamps(updated=False)
    )


def downgrade():
    for table in ('payments', 'inventory_transactions', 'sales_order_items', 'sales_orders',
                  'fabric_productions', 'inventory', 'dyeing_processes', 'thread_purchases',
                  'fabric_types', 'thread_types', 'customers', 'vendors'):
        op.drop_table(table)
