"""initial ledger schema

Revision ID: a1c4e2f3b5d6
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = 'a1c4e2f3b5d6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=50), nullable=False, unique=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('is_public', sa.Boolean(), server_default=sa.false()),
        sa.Column('is_admin', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'assets',
        sa.Column('symbol', sa.String(length=10), primary_key=True),
        sa.Column('current_price_usd', sa.Numeric(precision=15, scale=8), nullable=True),
        sa.Column('last_updated', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'holdings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('asset_symbol', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'asset_symbol', name='uq_holding_user_asset'),
        sa.CheckConstraint('amount >= 0', name='ck_holding_amount_non_negative'),
    )
    op.create_index('ix_holdings_user_id', 'holdings', ['user_id'])

    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('asset_symbol', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('btc_spent', sa.BigInteger(), nullable=False),
        sa.Column('purchase_price_usd', sa.Numeric(precision=15, scale=8)),
        sa.Column('btc_price_usd', sa.Numeric(precision=15, scale=2)),
        sa.Column('locked_until', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_purchases_user_asset_locked', 'purchases', ['user_id', 'asset_symbol', 'locked_until'])

    op.create_table(
        'trades',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('from_asset', sa.String(length=10), nullable=False),
        sa.Column('to_asset', sa.String(length=10), nullable=False),
        sa.Column('from_amount', sa.BigInteger(), nullable=False),
        sa.Column('to_amount', sa.BigInteger(), nullable=False),
        sa.Column('btc_price_usd', sa.Numeric(precision=15, scale=2)),
        sa.Column('asset_price_usd', sa.Numeric(precision=15, scale=8)),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_trades_user_created', 'trades', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('trades')
    op.drop_table('purchases')
    op.drop_table('holdings')
    op.drop_table('assets')
    op.drop_table('users')
