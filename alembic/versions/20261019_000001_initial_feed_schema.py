"""create content feed schema

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


CONTENT_TABLES = ("templates", "video_templates", "greeting_templates", "business_category_images")


def _content_columns() -> list:
    return [
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("asset_url", sa.String(), nullable=True),
        sa.Column("preview_url", sa.String(), nullable=True),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downloads", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
    ]


def _content_indexes(table: str) -> None:
    for column in ("is_premium", "is_active", "created_at"):
        op.create_index(op.f(f"ix_{table}_{column}"), table, [column], unique=False)


def upgrade() -> None:
    op.create_table(
        "business_categories",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("icon", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_business_categories_name"), "business_categories", ["name"], unique=False)
    op.create_index(op.f("ix_business_categories_is_active"), "business_categories", ["is_active"], unique=False)

    op.create_table(
        "templates",
        *_content_columns(),
        sa.Column("category", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "video_templates",
        *_content_columns(),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "greeting_templates",
        *_content_columns(),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("language", sa.String(), nullable=False, server_default="en"),
        sa.PrimaryKeyConstraint("id"),
    )
    for table in ("templates", "video_templates", "greeting_templates"):
        op.create_index(op.f(f"ix_{table}_category"), table, ["category"], unique=False)

    op.create_table(
        "business_category_images",
        *_content_columns(),
        sa.Column("business_category_id", sa.String(), nullable=False),
        sa.Column("approval_status", sa.String(), nullable=False, server_default="APPROVED"),
        sa.ForeignKeyConstraint(["business_category_id"], ["business_categories.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_business_category_images_business_category_id"),
        "business_category_images",
        ["business_category_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_business_category_images_approval_status"),
        "business_category_images",
        ["approval_status"],
        unique=False,
    )
    for table in CONTENT_TABLES:
        _content_indexes(table)

    op.create_table(
        "engagement_records",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("resource_id", sa.String(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("source_kind", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "resource_id", "kind", name="uq_engagement_user_resource_kind"),
    )
    op.create_index(op.f("ix_engagement_records_user_id"), "engagement_records", ["user_id"], unique=False)
    op.create_index(op.f("ix_engagement_records_resource_id"), "engagement_records", ["resource_id"], unique=False)
    op.create_index(op.f("ix_engagement_records_created_at"), "engagement_records", ["created_at"], unique=False)

    op.create_table(
        "download_events",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("resource_id", sa.String(), nullable=False),
        sa.Column("source_kind", sa.String(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=True),
        sa.Column("downloaded_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_download_events_user_id"), "download_events", ["user_id"], unique=False)
    op.create_index(op.f("ix_download_events_resource_id"), "download_events", ["resource_id"], unique=False)
    op.create_index(op.f("ix_download_events_downloaded_at"), "download_events", ["downloaded_at"], unique=False)

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("plan", sa.String(), nullable=True),
        sa.Column("tier", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="ACTIVE"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_subscriptions_user_id"), "subscriptions", ["user_id"], unique=False)
    op.create_index(op.f("ix_subscriptions_status"), "subscriptions", ["status"], unique=False)
    op.create_index(op.f("ix_subscriptions_created_at"), "subscriptions", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_table("subscriptions")
    op.drop_table("download_events")
    op.drop_table("engagement_records")
    op.drop_table("business_category_images")
    op.drop_table("greeting_templates")
    op.drop_table("video_templates")
    op.drop_table("templates")
    op.drop_table("business_categories")
