"""
Artifact service module for managing the scratch directory.

This module provides utilities for:
- Creating the scratch directory downloads are written into
- Listing downloaded media files, newest first
- Sweeping files that outlived the maximum age
- Streaming a file to the client and deleting it afterwards
"""

import os
import time
import uuid
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from app.utils.logging_utils import get_logger


logger = get_logger("artifacts")

MEDIA_EXTENSIONS = (".mp4", ".webm")
CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class TemporaryArtifact:
    """A file sitting in the scratch directory."""
    path: str
    size: int
    mtime: float

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def ext(self) -> str:
        return os.path.splitext(self.path)[1].lstrip(".").lower()

    @classmethod
    def from_path(cls, path: str) -> "TemporaryArtifact":
        stat = os.stat(path)
        return cls(path=os.path.abspath(path), size=stat.st_size, mtime=stat.st_mtime)


class ArtifactStore:
    """Scratch directory shared by every in-flight download and the periodic sweep."""

    def __init__(self, scratch_dir: str, clock: Callable[[], float] = time.time):
        self.scratch_dir = os.path.abspath(scratch_dir)
        self._clock = clock

    def ensure_scratch_dir(self) -> str:
        os.makedirs(self.scratch_dir, exist_ok=True)
        return self.scratch_dir

    @staticmethod
    def new_token() -> str:
        """Per-request token that prefixes every file the request writes."""
        return uuid.uuid4().hex[:12]

    def output_template(self, token: str) -> str:
        """yt-dlp output template for one request: <token>_<title>_<id>.<ext>"""
        return os.path.join(self.scratch_dir, f"{token}_%(title).80B_%(id)s.%(ext)s")

    def list_artifacts(
        self,
        prefix: Optional[str] = None,
        media_only: bool = True
    ) -> List[TemporaryArtifact]:
        """
        List files in the scratch directory, newest first.

        Args:
            prefix: Only include files whose name starts with this prefix
            media_only: Only include finished media files (mp4/webm), skipping
                yt-dlp leftovers such as .part and .ytdl

        Returns:
            List of TemporaryArtifact sorted by modification time descending
        """
        if not os.path.isdir(self.scratch_dir):
            return []

        artifacts = []
        for filename in os.listdir(self.scratch_dir):
            if media_only and not filename.lower().endswith(MEDIA_EXTENSIONS):
                continue
            if prefix and not filename.startswith(prefix):
                continue
            filepath = os.path.join(self.scratch_dir, filename)
            try:
                if os.path.isfile(filepath):
                    artifacts.append(TemporaryArtifact.from_path(filepath))
            except OSError:
                # Removed between listdir and stat by a concurrent request or the sweep
                continue

        artifacts.sort(key=lambda a: a.mtime, reverse=True)
        return artifacts

    def find_output(self, token: str) -> Optional[TemporaryArtifact]:
        """The artifact written for a request token, if any."""
        matches = self.list_artifacts(prefix=f"{token}_")
        return matches[0] if matches else None

    def discard(self, artifact: TemporaryArtifact) -> None:
        try:
            os.remove(artifact.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete {artifact.path}: {e}")

    def discard_token(self, token: str) -> None:
        """Remove every file (including partial downloads) written under a token."""
        if not os.path.isdir(self.scratch_dir):
            return
        for filename in os.listdir(self.scratch_dir):
            if filename.startswith(f"{token}_"):
                try:
                    os.remove(os.path.join(self.scratch_dir, filename))
                except OSError as e:
                    logger.warning(f"Could not delete {filename}: {e}")

    def sweep_expired(self, max_age_seconds: float) -> Dict[str, int]:
        """
        Delete every file in the scratch directory older than max_age_seconds.

        Partial downloads (.part, .ytdl) left by interrupted requests age out
        the same way finished media does.

        A file that cannot be deleted is logged and skipped so the sweep always
        finishes.

        Returns:
            Dictionary containing:
            - deleted: Number of files deleted
            - freed_bytes: Total disk space freed in bytes
        """
        cutoff = self._clock() - max_age_seconds
        deleted = 0
        freed_bytes = 0

        for artifact in self.list_artifacts(media_only=False):
            if artifact.mtime >= cutoff:
                continue
            try:
                os.remove(artifact.path)
                deleted += 1
                freed_bytes += artifact.size
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Sweep could not delete {artifact.name}: {e}")

        if deleted:
            logger.info(f"Sweep removed {deleted} file(s), freed {freed_bytes} bytes")
        return {"deleted": deleted, "freed_bytes": freed_bytes}

    async def serve_and_delete(
        self,
        artifact: TemporaryArtifact,
        chunk_size: int = CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        """
        Yield the artifact's bytes, then unlink it.

        The file is removed whether the transfer completes, fails, or the client
        goes away mid-stream.
        """
        handle = None
        sent = 0
        try:
            handle = await run_in_threadpool(open, artifact.path, "rb")
            while True:
                chunk = await run_in_threadpool(handle.read, chunk_size)
                if not chunk:
                    break
                sent += len(chunk)
                yield chunk
            logger.info(f"Served {artifact.name} ({sent} bytes)")
        except Exception as e:
            logger.error(f"Streaming error for {artifact.name} after {sent} bytes: {e}")
            raise
        finally:
            if handle is not None:
                handle.close()
            self.discard(artifact)
