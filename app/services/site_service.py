"""
Static site service.

Resolves request paths to files under the public directory and renders the
HTML/JS templates with analytics and branding tokens filled in.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

from app.exceptions import AssetForbidden, AssetNotFound


TEMPLATE_EXTENSIONS = (".html", ".js")

CONTENT_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".xml": "application/xml; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".svg": "image/svg+xml; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def is_template(path: str) -> bool:
    return path.lower().endswith(TEMPLATE_EXTENSIONS)


def resolve_asset(public_root: str, request_path: str) -> str:
    """
    Map a URL path to a file inside public_root.

    "/" and "" map to index.html. Anything that resolves outside the public
    directory (../, symlinks, absolute paths) is refused.

    Raises:
        AssetForbidden: the path escapes the public directory
        AssetNotFound: no regular file at the resolved path
    """
    root = os.path.realpath(public_root)
    relative = request_path.lstrip("/") or "index.html"
    candidate = os.path.realpath(os.path.join(root, relative))

    if os.path.commonpath([root, candidate]) != root:
        raise AssetForbidden()
    if not os.path.isfile(candidate):
        raise AssetNotFound()
    return candidate


@dataclass(frozen=True)
class SiteTokens:
    """Values substituted into HTML/JS assets."""
    ga_id: str = ""
    adsense_client: str = ""
    site_name: str = ""

    def as_mapping(self) -> Dict[str, str]:
        return {
            "__GA_ID__": self.ga_id,
            "__ADSENSE_CLIENT__": self.adsense_client,
            "__SITE_NAME__": self.site_name,
        }


def substitute_tokens(text: str, tokens: SiteTokens) -> str:
    """Replace every occurrence of each placeholder token."""
    for placeholder, value in tokens.as_mapping().items():
        text = text.replace(placeholder, value)
    return text


def render_template(path: str, tokens: SiteTokens) -> bytes:
    with open(path, "r", encoding="utf-8") as f:
        return substitute_tokens(f.read(), tokens).encode("utf-8")


def hostname_from_host_header(host: Optional[str]) -> Optional[str]:
    """Strip the port from a Host header value ("example.com:3000" -> "example.com")."""
    if not host:
        return None
    host = host.strip()
    if host.startswith("["):
        # IPv6 literal
        return host.split("]", 1)[0] + "]"
    return host.split(":", 1)[0]
