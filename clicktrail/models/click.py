"""Click event SQLAlchemy model for the append-only analytics store."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Float, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from clicktrail.core.database import ANALYTICS_SCHEMA, Base


class ClickEventRecord(Base):
    """One enriched redirect event.

    Rows are written once and never updated. Descriptor columns default to
    the empty string rather than NULL; only coordinates are nullable.
    """

    __tablename__ = "click_events"

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True)
    link_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        nullable=False,
        comment="UUID of the short link (references api.links.id)",
    )
    short_code: Mapped[str] = mapped_column(String(50), nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    domain_name: Mapped[str] = mapped_column(String(253), nullable=False, default="")
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the redirect happened",
    )

    # Browser / engine / OS / device / CPU
    browser_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    browser_version: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    browser_major: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    browser_type: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    engine_name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    engine_version: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    os_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    os_version: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    device_type: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    device_vendor: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    device_model: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    cpu_architecture: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    is_bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Geolocation
    ip: Mapped[str] = mapped_column(String(45), nullable=False, default="")
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    country_code: Mapped[str] = mapped_column(String(2), nullable=False, default="")
    region: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    region_code: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    isp: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    org: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    asn: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    accuracy_radius: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    is_proxy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    geo_source: Mapped[str] = mapped_column(String(20), nullable=False, default="")

    # UTM parameters
    utm_source: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    utm_medium: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    utm_campaign: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    utm_term: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    utm_content: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    utm_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Every other query-string parameter of the destination URL
    query_params: Mapped[dict[str, str]] = mapped_column(JSONB, nullable=False, default=dict)

    # Request
    referrer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_click_events_link_id_timestamp", "link_id", "timestamp"),
        {"schema": ANALYTICS_SCHEMA},
    )

    def __repr__(self) -> str:
        return f"<ClickEventRecord {self.id} link={self.link_id} at={self.timestamp}>"
