"""Create the durable key-value table.

Revision ID: 001_local_store
Revises:
Create Date: 2026-10-19

One row per key: cache entries (prefix cardsync_cache_) and the local
card archive live side by side in this table.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_local_store'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'local_store',
        sa.Column('key', sa.String(512), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key', name='pk_local_store'),
    )


def downgrade() -> None:
    op.drop_table('local_store')
