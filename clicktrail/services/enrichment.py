"""Pure functions that turn raw request data into click event fields.

Nothing here touches the network or shared state, so every step can be
exercised directly in tests.
"""

import ipaddress
import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from urllib.parse import parse_qsl, urlsplit

from user_agents import parse as parse_ua

# Proxy/platform headers carrying the client address, most trustworthy first
CLIENT_IP_HEADERS = (
    "cf-connecting-ip",
    "true-client-ip",
    "fastly-client-ip",
    "x-real-ip",
    "x-client-ip",
    "x-cluster-client-ip",
    "x-forwarded-for",
    "x-forwarded",
    "forwarded-for",
)

UTM_FIELDS = {
    "utm_source": "utm_source",
    "utm_medium": "utm_medium",
    "utm_campaign": "utm_campaign",
    "utm_term": "utm_term",
    "utm_content": "utm_content",
    "utm_id": "utm_id",
}

# (engine name, version pattern); first match wins
_ENGINE_PATTERNS = (
    ("Trident", re.compile(r"Trident/([\d.]+)")),
    ("EdgeHTML", re.compile(r"Edge/([\d.]+)")),
    ("Presto", re.compile(r"Presto/([\d.]+)")),
    ("Blink", re.compile(r"(?:Chrome|Chromium)/([\d.]+)")),
    ("Gecko", re.compile(r"rv:([\d.]+)\).*Gecko/")),
    ("WebKit", re.compile(r"AppleWebKit/([\d.]+)")),
)

_CPU_PATTERNS = (
    ("amd64", re.compile(r"\b(?:x86_64|x86-64|x64|amd64|win64|wow64)\b", re.I)),
    ("arm64", re.compile(r"\b(?:aarch64|arm64|armv8)\b", re.I)),
    ("arm", re.compile(r"\b(?:armv7l?|armv6l?|arm)\b", re.I)),
    ("ia32", re.compile(r"\b(?:i[3-6]86|x86|ia32)\b", re.I)),
    ("ppc", re.compile(r"\b(?:ppc|powerpc)\b", re.I)),
)


@dataclass
class UserAgentInfo:
    browser_name: str = ""
    browser_version: str = ""
    browser_major: str = ""
    browser_type: str = ""
    engine_name: str = ""
    engine_version: str = ""
    os_name: str = ""
    os_version: str = ""
    device_type: str = ""
    device_vendor: str = ""
    device_model: str = ""
    cpu_architecture: str = ""
    is_bot: bool = False

    def as_fields(self) -> dict:
        return asdict(self)


@dataclass
class QueryParams:
    """Destination URL query string split into UTM fields and the rest."""

    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    utm_term: str = ""
    utm_content: str = ""
    utm_id: str = ""
    custom: dict[str, str] = field(default_factory=dict)

    def as_fields(self) -> dict:
        fields = {name: getattr(self, name) for name in UTM_FIELDS.values()}
        fields["query_params"] = dict(self.custom)
        return fields


def is_public_ip(value: str) -> bool:
    """True for a syntactically valid address outside private/loopback ranges."""
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return False
    return not (address.is_private or address.is_loopback)


def extract_client_ip(headers: Mapping[str, str], fallback: str | None = None) -> str:
    """Find the client IP behind proxies.

    Headers are scanned in ``CLIENT_IP_HEADERS`` order; comma-separated values
    are split and the first public address wins. Falls back to the connection
    address (``fallback``), then to the empty string.
    """
    for header in CLIENT_IP_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        for candidate in value.split(","):
            candidate = candidate.strip()
            if candidate and is_public_ip(candidate):
                return candidate
    return fallback or ""


def _family(value: str | None) -> str:
    if not value or value == "Other":
        return ""
    return value


def _detect_engine(user_agent: str) -> tuple[str, str]:
    for name, pattern in _ENGINE_PATTERNS:
        match = pattern.search(user_agent)
        if match:
            return name, match.group(1)
    return "", ""


def _detect_cpu(user_agent: str) -> str:
    for name, pattern in _CPU_PATTERNS:
        if pattern.search(user_agent):
            return name
    return ""


def parse_user_agent(user_agent: str) -> UserAgentInfo:
    """Parse a User-Agent header into browser/engine/OS/device/CPU descriptors.

    Bot classification relies on the ua-parser signature database shipped with
    ``user-agents``. Unknown parts stay empty.
    """
    if not user_agent:
        return UserAgentInfo()

    ua = parse_ua(user_agent)

    version = ua.browser.version
    if ua.is_mobile:
        device_type = "mobile"
    elif ua.is_tablet:
        device_type = "tablet"
    elif ua.is_pc:
        device_type = "desktop"
    else:
        device_type = ""

    engine_name, engine_version = _detect_engine(user_agent)

    return UserAgentInfo(
        browser_name=_family(ua.browser.family),
        browser_version=ua.browser.version_string,
        browser_major=str(version[0]) if version else "",
        browser_type="crawler" if ua.is_bot else "",
        engine_name=engine_name,
        engine_version=engine_version,
        os_name=_family(ua.os.family),
        os_version=ua.os.version_string,
        device_type=device_type,
        device_vendor=ua.device.brand or "",
        device_model=ua.device.model or "",
        cpu_architecture=_detect_cpu(user_agent),
        is_bot=ua.is_bot,
    )


def extract_query_params(url: str) -> QueryParams:
    """Split a URL's query string into the six UTM fields and a custom map.

    UTM keys match case-insensitively. A malformed URL yields empty params.
    """
    params = QueryParams()
    try:
        query = urlsplit(url).query
        pairs = parse_qsl(query, keep_blank_values=True)
    except ValueError:
        return params

    for key, value in pairs:
        utm_field = UTM_FIELDS.get(key.lower())
        if utm_field:
            setattr(params, utm_field, value)
        else:
            params.custom[key] = value
    return params
