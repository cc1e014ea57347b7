import ipaddress
import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from app.core.config import settings
from app.core.exceptions import ValidationError

SKIPPED_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "#")
WEB_SCHEMES = ("http", "https")
SCHEME_PREFIX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def is_private_host(hostname: str) -> bool:
    """True for localhost, .local names and loopback/private/link-local IPs."""
    hostname = hostname.lower().rstrip(".")
    if hostname == "localhost" or hostname.endswith(".localhost") or hostname.endswith(".local"):
        return True
    try:
        address = ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return False
    return address.is_private or address.is_loopback or address.is_link_local or address.is_unspecified


def normalize_input_url(raw_url: str) -> str:
    """Clean up a user-supplied page URL, adding https:// when no scheme is given."""
    url = (raw_url or "").strip()
    if len(url) < 3:
        raise ValidationError(f"Please provide a valid URL for '{url}'. Error: Invalid URL format")

    if not SCHEME_PREFIX.match(url):
        url = f"https://{url}"

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        hostname = None
    if not hostname or parsed.scheme.lower() not in WEB_SCHEMES:
        raise ValidationError(f"Please provide a valid URL for {raw_url}. Error: Invalid URL format")

    if settings.BLOCK_PRIVATE_HOSTS and is_private_host(hostname):
        raise ValidationError(
            f"Please provide a valid URL for {raw_url}. Error: Private and localhost URLs are not allowed"
        )
    return url


def is_blocked_url(url: str) -> bool:
    """True when private hosts are blocked and the URL points at one."""
    if not settings.BLOCK_PRIVATE_HOSTS:
        return False
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return False
    return bool(hostname) and is_private_host(hostname)


def prepare_targets(urls: List[str]) -> List[str]:
    """Normalize every submitted URL; the first bad one rejects the whole request."""
    if not urls:
        raise ValidationError("Please provide at least one valid URL")
    return [normalize_input_url(url) for url in urls]


def resolve_link(base_url: str, href: str) -> Optional[str]:
    """Turn an href into an absolute http(s) URL, or None when it should not be checked."""
    href = (href or "").strip()
    if not href or href.lower().startswith(SKIPPED_HREF_PREFIXES):
        return None
    try:
        absolute = urljoin(base_url, href)
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme.lower() not in WEB_SCHEMES or not parsed.netloc:
        return None
    return absolute


def get_headers():
    """Return headers mimicking a browser to avoid bot detection."""
    return {
        "User-Agent": settings.USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate",
        "Accept-Language": "en-US,en;q=0.9",
        "Connection": "keep-alive",
        "Referer": "https://www.google.com/",
        "Upgrade-Insecure-Requests": "1",
    }
