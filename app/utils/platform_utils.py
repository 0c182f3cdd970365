"""
Platform utility functions for detecting which site a video URL belongs to.

This module provides utilities for:
- Detecting platform from URL
- The ordered substring rules behind detection
"""

from enum import Enum
from typing import Tuple


class PlatformTag(str, Enum):
    """Platforms the front-end knows about; everything else is a direct link."""
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TWITTER = "twitter"
    DIRECT = "direct"


# Ordered: first matching rule wins
PLATFORM_RULES: Tuple[Tuple[Tuple[str, ...], PlatformTag], ...] = (
    (("youtube.com", "youtu.be"), PlatformTag.YOUTUBE),
    (("tiktok.com",), PlatformTag.TIKTOK),
    (("instagram.com",), PlatformTag.INSTAGRAM),
    (("facebook.com", "fb.watch"), PlatformTag.FACEBOOK),
    (("twitter.com", "x.com"), PlatformTag.TWITTER),
)


def detect_platform(url: str) -> PlatformTag:
    """
    Detect platform from URL.
    Returns: youtube, tiktok, instagram, facebook, twitter, or direct.
    """
    url_lower = (url or "").lower()

    for needles, tag in PLATFORM_RULES:
        if any(needle in url_lower for needle in needles):
            return tag
    return PlatformTag.DIRECT
