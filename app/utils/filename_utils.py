"""
Filename utility functions for sanitizing and formatting filenames.

This module provides utilities for:
- Sanitizing filenames so they are safe inside an HTTP header
- Recovering the user-facing name of a downloaded artifact
- Building Content-Disposition headers
"""

import os
import re
import unicodedata


def sanitize_filename_for_header(filename: str, max_length: int = 200) -> str:
    """
    Reduce a filename to [A-Za-z0-9._-] so it can be quoted in a header.
    Accented characters are folded to ASCII first; anything else becomes '_'.
    """
    filename = unicodedata.normalize('NFKD', filename or '')
    filename = filename.encode('ascii', 'ignore').decode('ascii')
    filename = re.sub(r'[^a-zA-Z0-9._-]', '_', filename)
    filename = re.sub(r'__+', '_', filename)
    filename = filename[:max_length].strip('._')
    return filename or 'video'


def display_name_for_artifact(path: str, token: str = "") -> str:
    """
    Return the client-facing filename for a scratch file.

    Scratch files are named "<token>_<title>_<id>.<ext>"; the per-request token
    is an implementation detail and is stripped before the name is sanitized.
    """
    name = os.path.basename(path)
    prefix = f"{token}_" if token else ""
    if prefix and name.startswith(prefix):
        name = name[len(prefix):]
    return sanitize_filename_for_header(name)


def encode_content_disposition_filename(filename: str) -> str:
    """Build an attachment Content-Disposition value for an already sanitized name."""
    safe_filename = filename.replace('"', '_')
    return f'attachment; filename="{safe_filename}"'
