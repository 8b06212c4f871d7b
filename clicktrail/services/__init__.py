"""Business logic: resolution, click tracking, link lifecycle."""

from clicktrail.services.link_cache import LinkCache, compute_ttl
from clicktrail.services.links import LinkService, generate_short_code
from clicktrail.services.resolver import LinkResolver
from clicktrail.services.tracker import ClickTracker, RequestSnapshot

__all__ = [
    "ClickTracker",
    "LinkCache",
    "LinkResolver",
    "LinkService",
    "RequestSnapshot",
    "compute_ttl",
    "generate_short_code",
]
