"""create feature tables

Revision ID: 3c9e1f0a7b42
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c9e1f0a7b42'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = ('togglekit',)
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Features table
    op.create_table('features',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('identifier', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('group', sa.String(length=100), nullable=True),
        sa.Column('environment', sa.String(length=100), nullable=True),
        sa.Column('tenant_id', sa.String(length=100), nullable=True),
        sa.Column('status', sa.Enum('INACTIVE', 'ACTIVE', name='featurestatus', native_enum=False, length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index(op.f('ix_features_identifier'), 'features', ['identifier'], unique=True)
    op.create_index(op.f('ix_features_group'), 'features', ['group'], unique=False)
    op.create_index(op.f('ix_features_environment'), 'features', ['environment'], unique=False)
    op.create_index(op.f('ix_features_tenant_id'), 'features', ['tenant_id'], unique=False)

    # Polymorphic assignments; no FK on the assignable side
    op.create_table('feature_assignments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('feature_id', sa.Integer(), nullable=False),
        sa.Column('assignable_type', sa.String(length=100), nullable=False),
        sa.Column('assignable_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['feature_id'], ['features.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('feature_id', 'assignable_type', 'assignable_id', name='uq_feature_assignments_feature_assignable')
    )
    op.create_index(op.f('ix_feature_assignments_feature_id'), 'feature_assignments', ['feature_id'], unique=False)
    # Lookups of one member's features
    op.create_index('idx_feature_assignments_assignable', 'feature_assignments', ['assignable_type', 'assignable_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_feature_assignments_assignable', table_name='feature_assignments')
    op.drop_index(op.f('ix_feature_assignments_feature_id'), table_name='feature_assignments')
    op.drop_table('feature_assignments')
    op.drop_index(op.f('ix_features_tenant_id'), table_name='features')
    op.drop_index(op.f('ix_features_environment'), table_name='features')
    op.drop_index(op.f('ix_features_group'), table_name='features')
    op.drop_index(op.f('ix_features_identifier'), table_name='features')
    op.drop_table('features')
