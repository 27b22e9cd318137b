"""Catalog schema: makes, models, trims and marketplace listings.

Revision ID: 0001_catalog
Revises: None
Create Date: 2026-10-19 09:12:00
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_catalog"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "makes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "models",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("make_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["make_id"], ["makes.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("name", "make_id", name="uq_models_name_make"),
    )

    op.create_table(
        "trims",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("engine", sa.Text(), nullable=True),
        sa.Column("horsepower", sa.Integer(), nullable=True),
        sa.Column("torque", sa.Integer(), nullable=True),
        sa.Column("zero_to_sixty", sa.Float(), nullable=True),
        sa.Column("mpg_city", sa.Integer(), nullable=True),
        sa.Column("mpg_hwy", sa.Integer(), nullable=True),
        sa.Column("msrp", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["model_id"], ["models.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("year", "name", "model_id", name="uq_trims_year_name_model"),
    )

    op.create_table(
        "listings",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("source", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trim_id", sa.Integer(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["trim_id"], ["trims.id"], ondelete="SET NULL"),
    )

    op.create_index("idx_trims_year", "trims", ["year"])
    op.create_index("idx_listings_trim_price", "listings", ["trim_id", "price"])


def downgrade() -> None:
    op.drop_index("idx_listings_trim_price", table_name="listings")
    op.drop_index("idx_trims_year", table_name="trims")
    op.drop_table("listings")
    op.drop_table("trims")
    op.drop_table("models")
    op.drop_table("makes")
