"""
Pydantic models for request/response validation.

This module contains the BaseModel schemas exchanged between the routers and
the extraction service, and the JSON payloads the API returns.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class DownloadRequest(BaseModel):
    """One download request: validated URL plus optional format hints. Immutable."""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Absolute URL of the video page")
    format_id: Optional[str] = Field(None, description="Format identifier picked from /api/info")
    quality: Optional[str] = Field(None, description="Quality hint such as '720p' or 'best'")


class QualityOption(BaseModel):
    """One rung of the quality ladder: best format for a resolution label."""
    quality: str
    formatId: Optional[str] = None
    ext: Optional[str] = None
    filesize: int = 0


class VideoMetadata(BaseModel):
    """Metadata summarised from `yt-dlp --dump-json`."""
    title: str = "Untitled"
    thumbnail: str = ""
    duration: float = 0
    uploader: str = ""
    availableQualities: List[QualityOption] = []


class CheckResponse(BaseModel):
    ok: bool
    platform: str
    toolAvailable: bool
    transcoderAvailable: bool
    invocationMethod: str
    message: str
    error: Optional[str] = None


class InfoResponse(VideoMetadata):
    ok: bool = True
    platform: str


class ApiError(BaseModel):
    """Error payload for /api/check and /api/info."""
    ok: bool = False
    error: str
    detail: Optional[str] = None


class DownloadError(BaseModel):
    """Error payload for /api/download."""
    error: str
    hint: Optional[str] = None
    platform: Optional[str] = None
