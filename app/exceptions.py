"""
Error taxonomy for the downloader.

Every failure a request can run into is a DownloaderError subclass carrying a
user-facing message, a short diagnostic excerpt and the HTTP status the routers
answer with.
"""

from typing import Optional

# Diagnostic excerpts from tool output are capped before they reach a client
DETAIL_MAX_CHARS = 500


def truncate_detail(text: Optional[str], limit: int = DETAIL_MAX_CHARS) -> str:
    """Trim tool output to a client-safe excerpt."""
    if not text:
        return ""
    return text.strip()[:limit]


class DownloaderError(Exception):
    """Base class for all expected failures."""

    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = truncate_detail(detail)
        super().__init__(self.message)


class InvalidInput(DownloaderError):
    status_code = 400
    default_message = "Invalid URL"


class ToolUnavailable(DownloaderError):
    status_code = 500
    default_message = "yt-dlp not available"


class ExtractorNotFound(DownloaderError):
    status_code = 400
    default_message = "yt-dlp not available"


class MetadataUnavailable(DownloaderError):
    status_code = 500
    default_message = "Failed to get info"


class ExtractionFailed(DownloaderError):
    status_code = 400
    default_message = "Download failed"


class DownloadTimedOut(ExtractionFailed):
    default_message = "Download timed out"


class NoArtifactProduced(DownloaderError):
    status_code = 400
    default_message = "No file created"


class ArtifactTooSmall(DownloaderError):
    status_code = 400
    default_message = "File too small"


class RateLimited(DownloaderError):
    status_code = 429
    default_message = "Too many requests"


class AssetForbidden(DownloaderError):
    status_code = 403
    default_message = "Forbidden"


class AssetNotFound(DownloaderError):
    status_code = 404
    default_message = "Not found"
