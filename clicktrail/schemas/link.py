"""Link Pydantic schemas."""

import re
from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel

from clicktrail.models.link import Link, LinkStatus

SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class CachedLink(BaseModel):
    """Cache projection of a link plus the domain name it resolves under.

    Stored as JSON in the link cache, keyed by (domain_name, short_code).
    """

    id: UUID
    short_code: str
    original_url: str
    domain_id: UUID | None = None
    domain_name: str
    user_id: UUID | None = None
    organization_id: UUID | None = None
    status: LinkStatus
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_link(cls, link: Link, domain_name: str) -> "CachedLink":
        return cls(
            id=link.id,
            short_code=link.short_code,
            original_url=link.original_url,
            domain_id=link.domain_id,
            domain_name=domain_name,
            user_id=link.user_id,
            organization_id=link.organization_id,
            status=link.status,
            expires_at=link.expires_at,
            created_at=link.created_at,
            updated_at=link.updated_at,
        )


class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LinkCreate(ApiModel):
    """Schema for creating a new link."""

    original_url: HttpUrl = Field(description="The URL to shorten")
    domain_id: UUID | None = None
    organization_id: UUID | None = None
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    status: LinkStatus = LinkStatus.ACTIVE
    expires_at: datetime | None = None

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class LinkUpdate(ApiModel):
    """Schema for updating a link. Only fields that are set are applied."""

    link_id: UUID
    original_url: HttpUrl | None = None
    short_code: str | None = Field(default=None, min_length=1, max_length=50)
    domain_id: UUID | None = None
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    status: LinkStatus | None = None
    expires_at: datetime | None = None

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("short_code")
    @classmethod
    def validate_short_code(cls, v: str | None) -> str | None:
        if v is not None and not SHORT_CODE_PATTERN.match(v):
            raise ValueError("Short code can only contain letters, numbers, '-' and '_'")
        return v


class LinkDelete(ApiModel):
    link_id: UUID


class LinkResponse(ApiModel):
    """Schema for link response."""

    id: UUID
    short_code: str
    original_url: str
    domain_id: UUID | None
    user_id: UUID | None
    organization_id: UUID | None
    title: str | None
    description: str | None
    status: LinkStatus
    expires_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    short_url: str = ""
    qr_url: str = ""


class LinkListResponse(ApiModel):
    """Schema for paginated link list response."""

    items: list[LinkResponse]
    total: int
    limit: int
    offset: int
