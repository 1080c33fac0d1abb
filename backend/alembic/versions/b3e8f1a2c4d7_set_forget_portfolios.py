"""set & forget portfolios, full-precision btc price on lots and trades

Revision ID: b3e8f1a2c4d7
Revises: a1c4e2f3b5d6
Create Date: 2026-10-26 09:30:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = 'b3e8f1a2c4d7'
down_revision: Union[str, None] = 'a1c4e2f3b5d6'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    for table in ('purchases', 'trades'):
        with op.batch_alter_table(table) as batch_op:
            batch_op.alter_column(
                'btc_price_usd',
                existing_type=sa.Numeric(precision=15, scale=2),
                type_=sa.Numeric(precision=15, scale=8),
            )

    op.create_table(
        'set_forget_portfolios',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('initial_sats', sa.BigInteger(), nullable=False),
        sa.Column('share_token', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_set_forget_portfolios_user_id', 'set_forget_portfolios', ['user_id'])
    op.create_index('ix_set_forget_portfolios_share_token', 'set_forget_portfolios', ['share_token'], unique=True)

    op.create_table(
        'set_forget_allocations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('portfolio_id', sa.Integer(),
                  sa.ForeignKey('set_forget_portfolios.id', ondelete='CASCADE'), nullable=False),
        sa.Column('asset_symbol', sa.String(length=10), nullable=False),
        sa.Column('allocation_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('btc_amount', sa.BigInteger(), nullable=False),
        sa.Column('asset_amount', sa.BigInteger(), nullable=False),
        sa.Column('purchase_price_usd', sa.Numeric(precision=15, scale=8), nullable=False),
        sa.Column('btc_price_usd', sa.Numeric(precision=15, scale=8), nullable=False),
    )
    op.create_index('ix_set_forget_allocations_portfolio_id', 'set_forget_allocations', ['portfolio_id'])


def downgrade() -> None:
    op.drop_table('set_forget_allocations')
    op.drop_table('set_forget_portfolios')
    for table in ('trades', 'purchases'):
        with op.batch_alter_table(table) as batch_op:
            batch_op.alter_column(
                'btc_price_usd',
                existing_type=sa.Numeric(precision=15, scale=8),
                type_=sa.Numeric(precision=15, scale=2),
            )
