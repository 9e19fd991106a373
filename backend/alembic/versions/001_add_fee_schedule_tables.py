"""Add fee schedule reference tables

Revision ID: 001_fee_schedule
Revises:
Create Date: 2026-01-05

This migration adds:
- mpfs_benchmarks: Medicare Physician Fee Schedule rows per code/modifier/year
- gpci_localities: Geographic practice cost indices per Medicare locality
- zip_to_locality: ZIP to Medicare locality crosswalk
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_fee_schedule'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create mpfs_benchmarks table
    op.create_table(
        'mpfs_benchmarks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('hcpcs', sa.String(5), nullable=False),
        sa.Column('modifier', sa.String(2), nullable=False, server_default=''),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('qp_status', sa.String(10), nullable=False, server_default='nonQP'),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('work_rvu', sa.Float(), nullable=True),
        sa.Column('nonfac_pe_rvu', sa.Float(), nullable=True),
        sa.Column('fac_pe_rvu', sa.Float(), nullable=True),
        sa.Column('mp_rvu', sa.Float(), nullable=True),
        sa.Column('conversion_factor', sa.Float(), nullable=True),
        sa.Column('nonfac_fee', sa.Float(), nullable=True),
        sa.Column('fac_fee', sa.Float(), nullable=True),
        sa.Column('global_days', sa.String(3), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('hcpcs', 'modifier', 'year', 'qp_status', name='uq_mpfs_code_mod_year_status'),
    )
    op.create_index('ix_mpfs_benchmarks_hcpcs', 'mpfs_benchmarks', ['hcpcs'])
    op.create_index('ix_mpfs_benchmarks_year', 'mpfs_benchmarks', ['year'])
    op.create_index('ix_mpfs_lookup', 'mpfs_benchmarks', ['hcpcs', 'year', 'qp_status'])

    # Create gpci_localities table
    op.create_table(
        'gpci_localities',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('locality_num', sa.String(10), nullable=False),
        sa.Column('state_abbr', sa.String(2), nullable=False),
        sa.Column('locality_name', sa.String(255), nullable=True),
        sa.Column('zip_code', sa.String(5), nullable=True),
        sa.Column('work_gpci', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('pe_gpci', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('mp_gpci', sa.Float(), nullable=False, server_default='1.0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('state_abbr', 'locality_num', name='uq_gpci_state_locality'),
    )
    op.create_index('ix_gpci_localities_state_abbr', 'gpci_localities', ['state_abbr'])
    op.create_index('ix_gpci_localities_zip_code', 'gpci_localities', ['zip_code'])

    # Create zip_to_locality table
    op.create_table(
        'zip_to_locality',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('zip5', sa.String(5), nullable=False),
        sa.Column('state_abbr', sa.String(2), nullable=False),
        sa.Column('locality_num', sa.String(10), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_zip_to_locality_zip5', 'zip_to_locality', ['zip5'], unique=True)


def downgrade() -> None:
    op.drop_table('zip_to_locality')
    op.drop_table('gpci_localities')
    op.drop_table('mpfs_benchmarks')
