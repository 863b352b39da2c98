"""Input validation utilities."""

import ipaddress
from urllib.parse import urlparse

from recipekeeper.utils.exceptions import ValidationError

BLOCKED_HOSTS = {"localhost", "0.0.0.0"}


def validate_url(url: str) -> str:
    """
    Validate a recipe URL before fetching it.

    Args:
        url: URL to validate

    Returns:
        Stripped URL string

    Raises:
        ValidationError: If URL is malformed, not http(s), or points at a
            local/private address
    """
    if not url or not isinstance(url, str):
        raise ValidationError("URL must be a non-empty string")

    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ValidationError(f"Invalid URL format: {str(e)}") from e

    if parsed.scheme not in ("http", "https"):
        raise ValidationError("URL must use http or https protocol")

    hostname = parsed.hostname
    if not hostname:
        raise ValidationError("URL must have a valid hostname")

    if hostname.lower() in BLOCKED_HOSTS:
        raise ValidationError("URL cannot point to localhost or private IPs")

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return url

    if address.is_private or address.is_loopback or address.is_link_local or address.is_unspecified:
        raise ValidationError("URL cannot point to localhost or private IPs")

    return url
