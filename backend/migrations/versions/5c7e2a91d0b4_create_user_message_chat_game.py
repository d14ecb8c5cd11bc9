"""create user, message, chat and game tables

Revision ID: 5c7e2a91d0b4
Revises:
Create Date: 2025-09-30 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c7e2a91d0b4'
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
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'message' not in existing_tables:
        op.create_table(
            'message',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('msg', sa.Text(), nullable=False),
            sa.Column('msg_from', sa.String(length=64), nullable=False),
            sa.Column('msg_date_time', sa.DateTime(timezone=True), nullable=False),
            sa.Column('type', sa.String(length=32), nullable=False, server_default='direct'),
        )
        op.create_index('ix_message_msg_from', 'message', ['msg_from'])

    if 'chat' not in existing_tables:
        op.create_table(
            'chat',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('participants', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('message_ids', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        )

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.String(length=16), primary_key=True),
            sa.Column('game_type', sa.String(length=32), nullable=False, server_default='Nim'),
            sa.Column('status', sa.String(length=32), nullable=False, server_default='WAITING_TO_START'),
            sa.Column('players', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('initial_pile', sa.Integer(), nullable=False),
            sa.Column('remaining_objects', sa.Integer(), nullable=False),
            sa.Column('moves', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('winners', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_game_status', 'game', ['status'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game' in existing_tables:
        op.drop_index('ix_game_status', table_name='game')
        op.drop_table('game')
    if 'chat' in existing_tables:
        op.drop_table('chat')
    if 'message' in existing_tables:
        op.drop_index('ix_message_msg_from', table_name='message')
        op.drop_table('message')
    if 'user' in existing_tables:
        op.drop_index('ix_user_username', table_name='user')
        op.drop_table('user')
