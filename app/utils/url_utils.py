"""URL validation helpers shared by every API endpoint."""

from typing import Optional
from urllib.parse import urlparse

from app.exceptions import InvalidInput


def is_absolute_url(value: str) -> bool:
    """True when value parses with both a scheme and a network location."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc) and " " not in parsed.netloc


def require_url(value: Optional[str]) -> str:
    """
    Validate the mandatory `url` query parameter.

    Raises:
        InvalidInput: when the parameter is missing or not an absolute URL
    """
    if not value or not value.strip():
        raise InvalidInput("Missing url parameter")
    value = value.strip()
    if not is_absolute_url(value):
        raise InvalidInput("Invalid URL")
    return value


def safe_url_for_log(url: str) -> str:
    """Drop query strings and fragments before a URL goes into the logs."""
    try:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    except ValueError:
        return "invalid_url"
