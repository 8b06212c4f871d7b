"""SQLAlchemy models."""

from clicktrail.core.database import Base
from clicktrail.models.click import ClickEventRecord
from clicktrail.models.link import Domain, DomainStatus, Link, LinkStatus
from clicktrail.models.member import Member

__all__ = [
    "Base",
    "ClickEventRecord",
    "Domain",
    "DomainStatus",
    "Link",
    "LinkStatus",
    "Member",
]
