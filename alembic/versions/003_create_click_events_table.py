"""Create click_events table.

Revision ID: 003
Revises: 002
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enrichment descriptors: empty string when unknown
DESCRIPTOR_COLUMNS = (
    ("browser_name", 100),
    ("browser_version", 50),
    ("browser_major", 20),
    ("browser_type", 20),
    ("engine_name", 50),
    ("engine_version", 50),
    ("os_name", 100),
    ("os_version", 50),
    ("device_type", 20),
    ("device_vendor", 100),
    ("device_model", 100),
    ("cpu_architecture", 20),
    ("ip", 45),
    ("country", 100),
    ("country_code", 2),
    ("region", 100),
    ("region_code", 10),
    ("city", 255),
    ("timezone", 64),
    ("isp", 255),
    ("org", 255),
    ("asn", 50),
    ("accuracy_radius", 20),
    ("geo_source", 20),
    ("utm_source", 255),
    ("utm_medium", 255),
    ("utm_campaign", 255),
    ("utm_term", 255),
    ("utm_content", 255),
    ("utm_id", 255),
)


def upgrade() -> None:
    """Create the append-only click_events table."""
    op.create_table(
        "click_events",
        sa.Column("id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "link_id",
            UUID(as_uuid=True),
            nullable=False,
            comment="UUID of the short link (references api.links.id)",
        ),
        sa.Column("short_code", sa.String(50), nullable=False),
        sa.Column("original_url", sa.Text(), nullable=False),
        sa.Column("domain_name", sa.String(253), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the redirect happened",
        ),
        *[
            sa.Column(name, sa.String(length), nullable=False, server_default="")
            for name, length in DESCRIPTOR_COLUMNS
        ],
        sa.Column("is_bot", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_proxy", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "query_params",
            JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment="Non-UTM query parameters of the destination URL",
        ),
        sa.Column("referrer", sa.Text(), nullable=False, server_default=""),
        sa.Column("user_agent", sa.Text(), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_click_events")),
        schema="analytics",
    )

    op.create_index(
        "ix_click_events_link_id_timestamp",
        "click_events",
        ["link_id", "timestamp"],
        schema="analytics",
    )


def downgrade() -> None:
    """Drop the click_events table."""
    op.drop_index(
        "ix_click_events_link_id_timestamp",
        table_name="click_events",
        schema="analytics",
    )
    op.drop_table("click_events", schema="analytics")
