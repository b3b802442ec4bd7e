"""create_gallery_images_and_variants

Revision ID: 8c2d4e61a7b3
Revises:
Create Date: 2026-10-17 09:12:41.503318

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c2d4e61a7b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'gallery_images',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('alt_text', sa.String(length=200), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('original_url', sa.String(), nullable=False),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('mime_type', sa.String(length=50), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('uploaded_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_gallery_images_display_order'), 'gallery_images', ['display_order'], unique=False)
    op.create_index(op.f('ix_gallery_images_category'), 'gallery_images', ['category'], unique=False)
    op.create_index(op.f('ix_gallery_images_is_active'), 'gallery_images', ['is_active'], unique=False)

    # Variant rows go away with their image
    op.create_table(
        'image_variants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('gallery_image_id', sa.String(length=36), nullable=False),
        sa.Column('variant_type', sa.String(length=20), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('format', sa.String(length=10), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['gallery_image_id'], ['gallery_images.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "variant_type IN ('thumbnail', 'medium', 'large', 'webp')",
            name='ck_image_variants_variant_type',
        ),
    )
    op.create_index(op.f('ix_image_variants_gallery_image_id'), 'image_variants', ['gallery_image_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_image_variants_gallery_image_id'), table_name='image_variants')
    op.drop_table('image_variants')

    op.drop_index(op.f('ix_gallery_images_is_active'), table_name='gallery_images')
    op.drop_index(op.f('ix_gallery_images_category'), table_name='gallery_images')
    op.drop_index(op.f('ix_gallery_images_display_order'), table_name='gallery_images')
    op.drop_table('gallery_images')
