"""create user, room, room_member and room_log tables

Revision ID: 3c9d41a7b2e0
Revises:
Create Date: 2026-10-19 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9d41a7b2e0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('external_id', sa.String(length=128), nullable=False),
            sa.Column('nickname', sa.String(length=64), nullable=True),
            sa.Column('avatar', sa.String(length=512), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_user_external_id', 'user', ['external_id'], unique=True)

    if 'room' not in existing_tables:
        op.create_table(
            'room',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('room_code', sa.String(length=6), nullable=False),
            sa.Column('room_name', sa.String(length=64), nullable=False),
            sa.Column('owner_id', sa.String(length=128), nullable=False),
            sa.Column('desk_score', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('expire_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_room_room_code', 'room', ['room_code'])
        op.create_index('ix_room_expire_at', 'room', ['expire_at'])

    if 'room_member' not in existing_tables:
        op.create_table(
            'room_member',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id'), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('external_id', sa.String(length=128), nullable=False),
            sa.Column('nickname', sa.String(length=64), nullable=True),
            sa.Column('avatar', sa.String(length=512), nullable=True),
            sa.Column('personal_score', sa.BigInteger(), nullable=False, server_default='0'),
            sa.UniqueConstraint('room_id', 'external_id', name='uq_room_member_external_id'),
        )
        op.create_index('ix_room_member_room_id', 'room_member', ['room_id'])

    if 'room_log' not in existing_tables:
        op.create_table(
            'room_log',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id'), nullable=False),
            sa.Column('action', sa.String(length=16), nullable=False),
            sa.Column('external_id', sa.String(length=128), nullable=False),
            sa.Column('nickname', sa.String(length=64), nullable=True),
            sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_room_log_room_id', 'room_log', ['room_id'])


def downgrade():
    op.drop_index('ix_room_log_room_id', table_name='room_log')
    op.drop_table('room_log')
    op.drop_index('ix_room_member_room_id', table_name='room_member')
    op.drop_table('room_member')
    op.drop_index('ix_room_expire_at', table_name='room')
    op.drop_index('ix_room_room_code', table_name='room')
    op.drop_table('room')
    op.drop_index('ix_user_external_id', table_name='user')
    op.drop_table('user')
