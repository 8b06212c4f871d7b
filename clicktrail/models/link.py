"""Link and Domain SQLAlchemy models."""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from clicktrail.core.database import API_SCHEMA, Base


class LinkStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class DomainStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Domain(Base):
    """Custom domain that links can be served from once verified."""

    __tablename__ = "domains"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    )
    domain_name: Mapped[str] = mapped_column(
        String(253),
        unique=True,
        nullable=False,
        comment="Fully qualified host name, e.g. 'go.example.com'",
    )
    user_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True, index=True)
    organization_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True), nullable=True, index=True
    )
    status: Mapped[DomainStatus] = mapped_column(
        Enum(
            DomainStatus,
            name="domain_status",
            values_callable=lambda e: [m.value for m in e],
            inherit_schema=True,
        ),
        default=DomainStatus.PENDING,
        nullable=False,
    )
    verification_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = ({"schema": API_SCHEMA},)

    def __repr__(self) -> str:
        return f"<Domain {self.domain_name} ({self.status.value})>"


class Link(Base):
    """Short link. The short code is unique per domain scope."""

    __tablename__ = "links"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    )
    domain_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey(f"{API_SCHEMA}.domains.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Custom domain; NULL means the default host",
    )
    short_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Short code for the URL (e.g., 'abc123')",
    )
    original_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="The original URL to redirect to",
    )
    user_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True, index=True)
    organization_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True), nullable=True, index=True
    )
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[LinkStatus] = mapped_column(
        Enum(
            LinkStatus,
            name="link_status",
            values_callable=lambda e: [m.value for m in e],
            inherit_schema=True,
        ),
        default=LinkStatus.ACTIVE,
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Optional expiration timestamp",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("domain_id", "short_code", name="uq_links_domain_id_short_code"),
        # Postgres treats NULL domain_ids as distinct in the constraint above
        Index(
            "uq_links_default_short_code",
            "short_code",
            unique=True,
            postgresql_where=text("domain_id IS NULL"),
        ),
        {"schema": API_SCHEMA},
    )

    def __repr__(self) -> str:
        return f"<Link {self.short_code} -> {self.original_url[:50]}>"
