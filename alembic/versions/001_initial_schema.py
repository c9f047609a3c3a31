"""initial schema - credit ledger and purchase orders

Revision ID: 001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create credit_transactions table (kind as VARCHAR)
    op.create_table(
        'credit_transactions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, index=True),
        sa.Column('kind', sa.String(7), nullable=False),
        sa.Column('credits_delta', sa.Integer(), nullable=False),
        sa.Column('remaining_credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('order_reference', sa.String(64), nullable=True, index=True),
        sa.Column('grant_key', sa.String(128), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('remaining_credits >= 0', name='ck_credit_transactions_remaining_non_negative'),
    )
    op.create_index(
        'ix_credit_transactions_user_kind_created',
        'credit_transactions',
        ['user_id', 'kind', 'created_at'],
    )

    # Create purchase_orders table (status as VARCHAR)
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('order_number', sa.String(64), nullable=False, unique=True),
        sa.Column('user_id', sa.String(64), nullable=False, index=True),
        sa.Column('status', sa.String(7), nullable=False, server_default='pending'),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='usd'),
        sa.Column('plan_id', sa.String(32), nullable=True),
        sa.Column('credits_amount', sa.Integer(), nullable=False),
        sa.Column('payment_session_id', sa.String(255), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )


def downgrade() -> None:
    op.drop_table('purchase_orders')
    op.drop_index('ix_credit_transactions_user_kind_created', table_name='credit_transactions')
    op.drop_table('credit_transactions')
