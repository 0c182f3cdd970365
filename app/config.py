"""
Configuration module for the video downloader front-end.

This module centralizes all environment variables, constants, and runtime configuration
using pydantic-settings for type-safe configuration management.
"""

import os
from functools import lru_cache
from typing import Dict, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server Configuration
    port: int = Field(
        default=3000,
        validation_alias="PORT",
        description="Port the HTTP server listens on"
    )

    allowed_origin: str = Field(
        default="*",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Directory Configuration
    temp_dir: str = Field(
        default=os.path.join(PROJECT_ROOT, "temp"),
        validation_alias="TEMP_DIR",
        description="Scratch directory for downloaded files awaiting delivery"
    )

    public_dir: str = Field(
        default=os.path.join(PROJECT_ROOT, "public"),
        validation_alias="PUBLIC_DIR",
        description="Root directory for static assets"
    )

    # Tool Locations
    ytdlp_path: str = Field(
        default="yt-dlp",
        validation_alias="YTDLP_PATH",
        description="Custom path to the yt-dlp executable"
    )

    python_path: str = Field(
        default="python3",
        validation_alias="PYTHON_PATH",
        description="Interpreter used to run yt-dlp as a module"
    )

    ffmpeg_path: str = Field(
        default="ffmpeg",
        validation_alias="FFMPEG_PATH",
        description="Custom path to the ffmpeg executable"
    )

    # Site / Asset Tokens
    ga_measurement_id: str = Field(
        default="",
        validation_alias="GA_MEASUREMENT_ID",
        description="Analytics identifier substituted into __GA_ID__"
    )

    adsense_client_id: str = Field(
        default="",
        validation_alias="ADSENSE_CLIENT_ID",
        description="Ad client identifier substituted into __ADSENSE_CLIENT__"
    )

    default_site_name: str = Field(
        default="Downloader-World",
        validation_alias="DEFAULT_SITE_NAME",
        description="Display name substituted into __SITE_NAME__"
    )

    domain_mappings: str = Field(
        default="",
        validation_alias="DOMAIN_MAPPINGS",
        description="Comma separated domain=Site Name pairs"
    )

    # Rate Limiting
    rate_limit_max_requests: int = Field(
        default=100,
        validation_alias="RATE_LIMIT_MAX_REQUESTS",
        description="Requests allowed per client within one window"
    )

    rate_limit_window_seconds: int = Field(
        default=60,
        validation_alias="RATE_LIMIT_WINDOW_SECONDS",
        description="Length of the rate limit window in seconds"
    )

    # Scratch Directory Maintenance
    cleanup_interval_minutes: int = Field(
        default=30,
        validation_alias="CLEANUP_INTERVAL_MINUTES",
        description="Minutes between scratch directory sweeps"
    )

    artifact_max_age_minutes: int = Field(
        default=60,
        validation_alias="ARTIFACT_MAX_AGE_MINUTES",
        description="Age after which abandoned downloads are deleted"
    )

    # Extraction
    probe_timeout_seconds: float = Field(
        default=5.0,
        validation_alias="PROBE_TIMEOUT_SECONDS",
        description="Timeout for each availability probe"
    )

    probe_cache_ttl_seconds: float = Field(
        default=300.0,
        validation_alias="PROBE_CACHE_TTL_SECONDS",
        description="How long probe results are reused before re-probing"
    )

    metadata_timeout_seconds: float = Field(
        default=120.0,
        validation_alias="METADATA_TIMEOUT_SECONDS",
        description="Upper bound for a metadata lookup"
    )

    download_timeout_seconds: float = Field(
        default=600.0,
        validation_alias="DOWNLOAD_TIMEOUT_SECONDS",
        description="Upper bound for a single download"
    )

    min_artifact_bytes: int = Field(
        default=30000,
        validation_alias="MIN_ARTIFACT_BYTES",
        description="Downloads smaller than this are treated as failures"
    )

    library_fallback_enabled: bool = Field(
        default=True,
        validation_alias="LIBRARY_FALLBACK_ENABLED",
        description="Retry failed downloads with the yt_dlp Python library"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True
    )

    @property
    def site_name_mappings(self) -> Dict[str, str]:
        """Parse DOMAIN_MAPPINGS ("example.com=Example,foo.net=Foo") into a dict."""
        mappings: Dict[str, str] = {}
        for pair in self.domain_mappings.split(","):
            if "=" not in pair:
                continue
            domain, name = (part.strip() for part in pair.split("=", 1))
            if domain and name:
                mappings[domain.lower()] = name
        return mappings

    def site_name_for_host(self, hostname: Optional[str]) -> str:
        """Resolve the display name for a Host header; exact match first, then substring."""
        if not hostname:
            return self.default_site_name

        mappings = self.site_name_mappings
        host_lower = hostname.lower()

        if host_lower in mappings:
            return mappings[host_lower]

        for domain, name in mappings.items():
            if domain in host_lower:
                return name

        return self.default_site_name


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
