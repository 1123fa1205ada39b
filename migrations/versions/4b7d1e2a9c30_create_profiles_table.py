"""create_profiles_table

Revision ID: 4b7d1e2a9c30
Revises:
Create Date: 2026-10-12 09:14:27.512830

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4b7d1e2a9c30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the profiles table, one row per Supabase user."""
    op.create_table('profiles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_image_url', sa.String(length=1000), nullable=True),
        sa.Column('profile_image_ref', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('banner_image_url', sa.String(length=1000), nullable=True),
        sa.Column('banner_image_ref', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('bio IS NULL OR length(bio) <= 500', name='ck_profiles_bio_length'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_profiles_owner_id', 'profiles', ['owner_id'], unique=True)


def downgrade() -> None:
    """Drop the profiles table."""
    op.drop_index('ix_profiles_owner_id', table_name='profiles')
    op.drop_table('profiles')
