"""Initial visitor analytics schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - visitor_counters table: Singleton row holding the global visit count
    - visit_logs table: Append-only log of counted visits
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    # Tables may already exist if the service started with AUTO_CREATE_TABLES
    if 'visitor_counters' not in existing_tables:
        op.create_table(
            'visitor_counters',
            sa.Column('id', sa.String(length=32), nullable=False),
            sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
            sa.PrimaryKeyConstraint('id')
        )

    if 'visit_logs' not in existing_tables:
        op.create_table(
            'visit_logs',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('country', sa.String(length=100), nullable=True),
            sa.Column('country_code', sa.String(length=8), nullable=True),
            sa.Column('city', sa.String(length=100), nullable=True),
            sa.Column('region', sa.String(length=100), nullable=True),
            sa.Column('ip', sa.String(length=45), nullable=True),
            sa.Column('device_type', sa.String(length=40), nullable=True),
            sa.Column('browser', sa.String(length=40), nullable=True),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )

        op.create_index(
            'ix_visit_logs_timestamp',
            'visit_logs',
            ['timestamp']
        )


def downgrade() -> None:
    op.drop_index('ix_visit_logs_timestamp', table_name='visit_logs')
    op.drop_table('visit_logs')
    op.drop_table('visitor_counters')
