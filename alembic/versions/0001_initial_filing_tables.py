"""Initial filing tables: registry, configuration, filings, rectifications, notifications

Revision ID: v1_001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'v1_001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'taxpayers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('cuit', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('good_taxpayer', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_taxpayers'),
        sa.UniqueConstraint('cuit', name='uq_taxpayers_cuit'),
    )

    op.create_table(
        'trades',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('taxpayer_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['taxpayer_id'], ['taxpayers.id'], name='fk_trades_taxpayer_id_taxpayers'),
        sa.PrimaryKeyConstraint('id', name='pk_trades'),
    )
    op.create_index('ix_trades_taxpayer_id', 'trades', ['taxpayer_id'])

    op.create_table(
        'tax_configuration',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('deadline_day', sa.Integer(), nullable=False),
        sa.Column('current_rate', sa.Numeric(8, 6), nullable=False),
        sa.Column('default_amount', sa.Numeric(20, 2), nullable=False),
        sa.Column('good_taxpayer_discount', sa.Numeric(8, 6), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('id = 1', name='ck_tax_configuration_singleton'),
        sa.CheckConstraint('deadline_day BETWEEN 1 AND 31', name='ck_tax_configuration_deadline_day_range'),
        sa.PrimaryKeyConstraint('id', name='pk_tax_configuration'),
    )

    op.create_table(
        'filings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('taxpayer_id', sa.Integer(), nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=False),
        sa.Column('filed_on', sa.Date(), nullable=False),
        sa.Column('period_year', sa.SmallInteger(), nullable=False),
        sa.Column('period_month', sa.SmallInteger(), nullable=False),
        sa.Column('amount', sa.Numeric(20, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('filed_on_time', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('computed_fee', sa.Numeric(20, 2), nullable=False),
        sa.Column('transmitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rectified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['taxpayer_id'], ['taxpayers.id'], name='fk_filings_taxpayer_id_taxpayers'),
        sa.ForeignKeyConstraint(['trade_id'], ['trades.id'], name='fk_filings_trade_id_trades'),
        sa.PrimaryKeyConstraint('id', name='pk_filings'),
        sa.UniqueConstraint(
            'taxpayer_id', 'trade_id', 'period_year', 'period_month',
            name='uq_filings_taxpayer_trade_period',
        ),
    )
    op.create_index('ix_filings_period', 'filings', ['period_year', 'period_month'])

    op.create_table(
        'rectifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('filing_id', sa.Integer(), nullable=False),
        sa.Column('taxpayer_id', sa.Integer(), nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(20, 2), nullable=False),
        sa.Column('fee', sa.Numeric(20, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('transmitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['filing_id'], ['filings.id'], name='fk_rectifications_filing_id_filings'),
        sa.ForeignKeyConstraint(['taxpayer_id'], ['taxpayers.id'], name='fk_rectifications_taxpayer_id_taxpayers'),
        sa.ForeignKeyConstraint(['trade_id'], ['trades.id'], name='fk_rectifications_trade_id_trades'),
        sa.PrimaryKeyConstraint('id', name='pk_rectifications'),
        sa.UniqueConstraint('filing_id', 'sequence_number', name='uq_rectifications_filing_sequence'),
    )
    op.create_index('ix_rectifications_filing_id', 'rectifications', ['filing_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notified_on', sa.Date(), nullable=False),
        sa.Column('cuit', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(20, 2), nullable=False),
        sa.Column('trade_code', sa.String(50), nullable=False),
        sa.Column('month', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_notifications'),
    )


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_index('ix_rectifications_filing_id', table_name='rectifications')
    op.drop_table('rectifications')
    op.drop_index('ix_filings_period', table_name='filings')
    op.drop_table('filings')
    op.drop_table('tax_configuration')
    op.drop_index('ix_trades_taxpayer_id', table_name='trades')
    op.drop_table('trades')
    op.drop_table('taxpayers')
