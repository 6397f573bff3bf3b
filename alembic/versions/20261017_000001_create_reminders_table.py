"""create reminders table

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op  # type: ignore[attr-defined]
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261017_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reminders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('note_text', sa.Text(), nullable=False),
        sa.Column('extra_note', sa.Text(), nullable=False, server_default=''),
        sa.Column('location_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('location_address', sa.Text(), nullable=False, server_default=''),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('is_enter_reminder', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('section', sa.String(50), nullable=False, server_default='Active Reminders'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index(op.f('ix_reminders_is_active'), 'reminders', ['is_active'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_reminders_is_active'), table_name='reminders')
    op.drop_table('reminders')
