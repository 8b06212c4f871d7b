"""Organization membership, read by link access checks."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from clicktrail.core.database import API_SCHEMA, Base

# Roles that may manage every link of their organization
ORG_MANAGER_ROLES = ("owner", "admin")


class Member(Base):
    """A user's role in an organization."""

    __tablename__ = "members"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    )
    organization_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), nullable=False, index=True)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="member",
        comment="owner, admin or member",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_members_organization_id_user_id"),
        {"schema": API_SCHEMA},
    )

    @property
    def can_manage_links(self) -> bool:
        return self.role in ORG_MANAGER_ROLES
