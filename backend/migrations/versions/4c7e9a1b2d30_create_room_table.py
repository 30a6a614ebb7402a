"""create room table

Revision ID: 4c7e9a1b2d30
Revises:
Create Date: 2026-10-19 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7e9a1b2d30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Databases bootstrapped with `flask db-reset` already have the table.
    if 'room' in set(insp.get_table_names()):
        room_cols = {c['name'] for c in insp.get_columns('room')}
        if 'version' not in room_cols:
            op.add_column('room', sa.Column('version', sa.Integer(), nullable=False, server_default='1'))
        return

    op.create_table(
        'room',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('room_code', sa.String(length=6), nullable=False),
        sa.Column('state', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_room_room_code'), 'room', ['room_code'], unique=True)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'room' not in set(insp.get_table_names()):
        return
    op.drop_index(op.f('ix_room_room_code'), table_name='room')
    op.drop_table('room')
