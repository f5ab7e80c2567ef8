"""Initial schema: properties, catalog, inspection records, quota, queue, snapshots, runs.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _property_fk(**kwargs) -> sa.Column:
    return sa.Column(
        "property_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        **kwargs,
    )


def upgrade() -> None:
    # Properties
    op.create_table(
        "properties",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("site_url", sa.String(500), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("last_synced_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("idx_property_tenant_site", "properties", ["tenant_id", "site_url"], unique=True)

    # Sweep settings
    op.create_table(
        "indexation_settings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _property_fk(unique=True),
        sa.Column("auto_inspect_new", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("auto_inspect_updated", sa.Boolean, nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )

    # OAuth credentials
    op.create_table(
        "oauth_credentials",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _property_fk(unique=True),
        sa.Column("access_token", sa.Text, nullable=False),
        sa.Column("refresh_token", sa.Text, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scope", sa.String(500)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )

    # URL catalog
    op.create_table(
        "catalog_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _property_fk(index=True),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column("lastmod", sa.DateTime(timezone=True)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("source", sa.String(20), nullable=False, server_default="sitemap"),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("property_id", "url", name="uq_catalog_property_url"),
    )
    op.create_index("idx_catalog_property_active", "catalog_entries", ["property_id", "is_active"])

    # Inspection records (one per catalog entry)
    op.create_table(
        "inspection_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "catalog_entry_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("catalog_entries.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        _property_fk(),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column("verdict", sa.String(30), nullable=False, server_default="unknown"),
        sa.Column("coverage_state", sa.Text),
        sa.Column("last_crawl_time", sa.DateTime(timezone=True)),
        sa.Column("crawled_as", sa.String(20)),
        sa.Column("robots_txt_state", sa.String(30)),
        sa.Column("indexing_state", sa.String(40)),
        sa.Column("page_fetch_state", sa.String(40)),
        sa.Column("google_canonical", sa.Text),
        sa.Column("user_canonical", sa.Text),
        sa.Column("inspected_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("property_id", "url", name="uq_inspection_property_url"),
    )
    op.create_index("idx_inspection_property_verdict", "inspection_records", ["property_id", "verdict"])
    op.create_index("idx_inspection_inspected_at", "inspection_records", ["property_id", "inspected_at"])

    # Daily quota counters
    op.create_table(
        "quota_states",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _property_fk(unique=True),
        sa.Column("inspection_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("inspection_date", sa.Date),
        sa.Column("submission_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("submission_date", sa.Date),
        *_timestamps(),
    )

    # Submission queue
    op.create_table(
        "queue_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _property_fk(),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column("action", sa.String(20), nullable=False, server_default="URL_UPDATED"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
        sa.Column("error_message", sa.Text),
        *_timestamps(),
        sa.UniqueConstraint("property_id", "url", "action", name="uq_queue_property_url_action"),
    )
    op.create_index("idx_queue_property_status", "queue_items", ["property_id", "status"])

    # Daily verdict snapshots
    op.create_table(
        "indexation_snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _property_fk(index=True),
        sa.Column("stat_date", sa.Date, nullable=False),
        sa.Column("total_urls", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("indexed", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("not_indexed", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("crawled_not_indexed", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("discovered_not_indexed", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("noindex", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("blocked_robots", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("error", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("unknown", sa.Integer, nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.UniqueConstraint("property_id", "stat_date", name="uq_snapshot_property_date"),
    )

    # Processing cycle audit log
    op.create_table(
        "indexation_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _property_fk(index=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("trigger", sa.String(20), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.Column("status", sa.String(20), nullable=False, server_default="running"),
        sa.Column("processed", sa.Integer, server_default=sa.text("0")),
        sa.Column("succeeded", sa.Integer, server_default=sa.text("0")),
        sa.Column("error_message", sa.Text),
    )


def downgrade() -> None:
    op.drop_table("indexation_runs")
    op.drop_table("indexation_snapshots")
    op.drop_table("queue_items")
    op.drop_table("quota_states")
    op.drop_table("inspection_records")
    op.drop_table("catalog_entries")
    op.drop_table("oauth_credentials")
    op.drop_table("indexation_settings")
    op.drop_table("properties")
