"""Create domains, links and members tables.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

domain_status = postgresql.ENUM(
    "pending", "active", "inactive", name="domain_status", schema="api", create_type=False
)
link_status = postgresql.ENUM(
    "active", "inactive", "expired", name="link_status", schema="api", create_type=False
)


def upgrade() -> None:
    """Create the domains, links and members tables."""
    domain_status.create(op.get_bind(), checkfirst=True)
    link_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "domains",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "domain_name",
            sa.String(253),
            nullable=False,
            comment="Fully qualified host name, e.g. 'go.example.com'",
        ),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("organization_id", sa.UUID(), nullable=True),
        sa.Column("status", domain_status, nullable=False),
        sa.Column("verification_token", sa.String(255), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_domains")),
        sa.UniqueConstraint("domain_name", name=op.f("uq_domains_domain_name")),
        schema="api",
    )
    op.create_index(op.f("ix_domains_user_id"), "domains", ["user_id"], schema="api")
    op.create_index(
        op.f("ix_domains_organization_id"), "domains", ["organization_id"], schema="api"
    )

    op.create_table(
        "links",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "domain_id",
            sa.UUID(),
            nullable=True,
            comment="Custom domain; NULL means the default host",
        ),
        sa.Column(
            "short_code",
            sa.String(50),
            nullable=False,
            comment="Short code for the URL (e.g., 'abc123')",
        ),
        sa.Column(
            "original_url",
            sa.Text(),
            nullable=False,
            comment="The original URL to redirect to",
        ),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("organization_id", sa.UUID(), nullable=True),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("status", link_status, nullable=False),
        sa.Column(
            "expires_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Optional expiration timestamp",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_links")),
        sa.ForeignKeyConstraint(
            ["domain_id"],
            ["api.domains.id"],
            name=op.f("fk_links_domain_id_domains"),
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint(
            "domain_id", "short_code", name="uq_links_domain_id_short_code"
        ),
        schema="api",
    )
    op.create_index(op.f("ix_links_short_code"), "links", ["short_code"], schema="api")
    op.create_index(op.f("ix_links_domain_id"), "links", ["domain_id"], schema="api")
    op.create_index(op.f("ix_links_user_id"), "links", ["user_id"], schema="api")
    op.create_index(
        op.f("ix_links_organization_id"), "links", ["organization_id"], schema="api"
    )
    op.create_index(
        "uq_links_default_short_code",
        "links",
        ["short_code"],
        unique=True,
        schema="api",
        postgresql_where=sa.text("domain_id IS NULL"),
    )

    op.create_table(
        "members",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("organization_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            comment="owner, admin or member",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_members")),
        sa.UniqueConstraint(
            "organization_id", "user_id", name="uq_members_organization_id_user_id"
        ),
        schema="api",
    )
    op.create_index(
        op.f("ix_members_organization_id"), "members", ["organization_id"], schema="api"
    )
    op.create_index(op.f("ix_members_user_id"), "members", ["user_id"], schema="api")


def downgrade() -> None:
    """Drop the domains, links and members tables."""
    op.drop_table("members", schema="api")
    op.drop_table("links", schema="api")
    op.drop_table("domains", schema="api")
    link_status.drop(op.get_bind(), checkfirst=True)
    domain_status.drop(op.get_bind(), checkfirst=True)
