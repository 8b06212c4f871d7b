"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from clicktrail.core.config import get_settings
from clicktrail.services.enrichment import extract_client_ip

settings = get_settings()


def get_real_client_ip(request: Request) -> str:
    """Rate limit key: the same client IP click tracking records.

    Falls back to the direct peer address when no proxy header is usable.
    """
    return extract_client_ip(request.headers, get_remote_address(request))


# Create the limiter instance with custom key function
limiter = Limiter(
    key_func=get_real_client_ip,
    default_limits=["1000/hour"],
    storage_uri=settings.redis_url,  # Shared across workers
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)

# Rate limit constants for different endpoint types
# These can be used as decorators: @limiter.limit(RATE_LIMIT_REDIRECT)

# Redirects are the hot path
RATE_LIMIT_REDIRECT = "1000/minute"

# QR rendering is heavier than a redirect and cached by clients for an hour
RATE_LIMIT_QR = "120/minute"

# Link creation, to slow down spam
RATE_LIMIT_CREATE_LINK = "60/hour"

# General API endpoints
RATE_LIMIT_API = "100/minute"
