"""initial migration: projects and assets

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op  # type: ignore
import sqlalchemy as sa  # type: ignore

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('projects',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('brief', sa.Text(), nullable=True),
        sa.Column('keywords', sa.String(length=120), nullable=True),
        sa.Column('emotion', sa.String(length=120), nullable=True),
        sa.Column('look_and_feel', sa.String(length=120), nullable=True),
        sa.Column('combined_vector', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_projects_created_at', 'projects', ['created_at'])
    op.create_table('assets',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('filename', sa.String(length=256), nullable=False),
        sa.Column('file_url', sa.String(length=2048), nullable=False),
        sa.Column('project_id', sa.String(length=36), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('keywords', sa.String(length=120), nullable=True),
        sa.Column('emotion', sa.String(length=120), nullable=True),
        sa.Column('look_and_feel', sa.String(length=120), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('combined_vector', sa.JSON(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_assets_project_id', 'assets', ['project_id'])
    op.create_index('ix_assets_is_public', 'assets', ['is_public'])
    op.create_index('ix_assets_created_at', 'assets', ['created_at'])


def downgrade():
    op.drop_table('assets')
    op.drop_table('projects')
