from alembic import op
import sqlalchemy as sa

revision = '0002_add_inventory_sync_tasks'
down_revision = '0001_init'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'inventory_sync_tasks',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('source_kind', sa.String(30), nullable=False),
        sa.Column('source_id', sa.Integer, nullable=False, index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING', index=True),
        sa.Column('attempts', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text, nullable=True),
        sa.Column('payload', sa.JSON, nullable=True),
        sa.Column('inventory_id', sa.Integer, sa.ForeignKey('inventory.id'), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime, nullable=True)
    )


def downgrade():
    op.drop_table('inventory_sync_tasks')
