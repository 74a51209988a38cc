"""Local key-value storage for the store collections

Revision ID: 20261019_storage
Revises:
Create Date: 2026-10-19

One row per collection key (products, sales, priceHistory, restockHistory,
settings). value_json holds the collection's JSON document.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_storage'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('storage_entries',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value_json', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('key', name=op.f('pk_storage_entries'))
    )


def downgrade():
    op.drop_table('storage_entries')
