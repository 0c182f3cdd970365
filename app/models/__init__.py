"""
Models package for API request/response validation.

This package contains Pydantic models used throughout the application
for validating API requests and responses.
"""

from .schemas import (
    DownloadRequest,
    QualityOption,
    VideoMetadata,
    CheckResponse,
    InfoResponse,
    ApiError,
    DownloadError,
)

__all__ = [
    "DownloadRequest",
    "QualityOption",
    "VideoMetadata",
    "CheckResponse",
    "InfoResponse",
    "ApiError",
    "DownloadError",
]
