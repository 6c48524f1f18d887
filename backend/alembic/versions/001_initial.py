"""Initial schema: SEO URLs and scope tables.

Revision ID: 001
Revises:
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Languages table
    op.create_table(
        "languages",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("locale", sa.String(16), nullable=False),
    )

    # Sales channels table
    op.create_table(
        "sales_channels",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type_name", sa.String(50), nullable=False, server_default="storefront"),
        sa.Column("active", sa.Boolean, nullable=False, server_default="true"),
    )

    # Languages offered per sales channel
    op.create_table(
        "sales_channel_languages",
        sa.Column(
            "sales_channel_id",
            sa.String(255),
            sa.ForeignKey("sales_channels.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "language_id",
            sa.String(255),
            sa.ForeignKey("languages.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    # SEO URLs table
    op.create_table(
        "seo_urls",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("route_name", sa.String(255), nullable=False),
        sa.Column("foreign_key", sa.String(255), nullable=True),
        sa.Column("sales_channel_id", sa.String(255), nullable=False),
        sa.Column("language_id", sa.String(255), nullable=False),
        sa.Column("path_info", sa.String(2048), nullable=False),
        sa.Column("seo_path_info", sa.String(2048), nullable=False),
        sa.Column("is_canonical", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("is_modified", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_seo_urls_route_foreign_key", "seo_urls", ["route_name", "foreign_key"])
    op.create_index("ix_seo_urls_deleted_canonical", "seo_urls", ["is_deleted", "is_canonical"])
    op.create_index(
        "uq_seo_urls_live_path",
        "seo_urls",
        ["sales_channel_id", "language_id", "seo_path_info"],
        unique=True,
        postgresql_where=sa.text("is_deleted = false"),
    )
    op.create_index(
        "uq_seo_urls_live_canonical",
        "seo_urls",
        ["route_name", "foreign_key", "sales_channel_id", "language_id"],
        unique=True,
        postgresql_where=sa.text("is_canonical = true AND is_deleted = false"),
    )


def downgrade() -> None:
    op.drop_index("uq_seo_urls_live_canonical", table_name="seo_urls")
    op.drop_index("uq_seo_urls_live_path", table_name="seo_urls")
    op.drop_index("ix_seo_urls_deleted_canonical", table_name="seo_urls")
    op.drop_index("ix_seo_urls_route_foreign_key", table_name="seo_urls")
    op.drop_table("seo_urls")
    op.drop_table("sales_channel_languages")
    op.drop_table("sales_channels")
    op.drop_table("languages")
