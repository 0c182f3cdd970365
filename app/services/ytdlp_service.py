"""
YT-DLP service module.

Runs the yt-dlp executable for metadata lookups and progressive downloads, with
the yt_dlp Python library as a secondary download strategy.

Downloads always ask for a single progressive file (video and audio in one
container) so no ffmpeg merge step is ever required.
"""

import asyncio
import json
import random
import re
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

import yt_dlp
from starlette.concurrency import run_in_threadpool

from app.exceptions import (
    ArtifactTooSmall,
    DownloadTimedOut,
    ExtractionFailed,
    ExtractorNotFound,
    MetadataUnavailable,
    NoArtifactProduced,
    ToolUnavailable,
)
from app.models.schemas import DownloadRequest, QualityOption, VideoMetadata
from app.services.artifact_service import ArtifactStore, TemporaryArtifact
from app.services.availability_service import AvailabilityProber
from app.utils.logging_utils import get_logger
from app.utils.url_utils import safe_url_for_log


logger = get_logger("ytdlp")

QUALITY_EXTENSIONS = {"mp4", "webm", "m4a"}
PROGRESSIVE_SELECTOR = "best[ext=mp4]/best"

USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0',
]

# Checked in order; advisory only, used for the message shown to the user.
# Shell errors first: "command not found" also contains "not found"
ERROR_CLASSES = (
    (
        ("command not found", "not recognized as", "no such file or directory",
         "enoent", "no module named yt_dlp"),
        "yt-dlp is not installed on the server",
    ),
    (
        ("video unavailable", "not found", "http error 404", "has been removed",
         "deleted", "private video", "is private", "does not exist"),
        "Video not found, deleted, or private",
    ),
    (
        ("available in your country", "geo restrict", "geo-restrict",
         "blocked in your country", "not available from your location"),
        "This video is not available in the server's region",
    ),
    (
        ("age-restricted", "age restricted", "confirm your age",
         "inappropriate for some users"),
        "This video is age-restricted",
    ),
    (
        ("login required", "log in", "sign in", "authentication",
         "use --cookies", "requires login"),
        "This video requires authentication",
    ),
)
GENERIC_ERROR = "Could not download this video. Please check the URL and try again."


class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes


class SubprocessRunner:
    """Execute subprocess with consistent timeout and cleanup handling"""

    async def run(self, cmd: List[str], timeout: float) -> CompletedProcess:
        """
        Run subprocess with timeout.

        The child is killed if the timeout expires or the awaiting task is
        cancelled, so no yt-dlp process outlives the request that started it.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        return CompletedProcess(process.returncode, stdout, stderr)


def classify_error(text: Optional[str]) -> str:
    """Map yt-dlp diagnostic output to a human-readable message."""
    lowered = (text or "").lower()
    for needles, message in ERROR_CLASSES:
        if any(needle in lowered for needle in needles):
            return message
    return GENERIC_ERROR


def build_format_selector(quality: Optional[str] = None) -> str:
    """
    Progressive-only format selector.

    A quality hint caps the height: the second number of a "WxH" label
    ("1280x720"), otherwise the first number ("720p", "480"). Anything else
    ("best", None) selects the best single file.
    """
    quality = quality or ""
    match = re.search(r"(\d+)\s*x\s*(\d+)", quality)
    if match:
        height = int(match.group(2))
    else:
        match = re.search(r"(\d+)p?", quality)
        if not match:
            return PROGRESSIVE_SELECTOR
        height = int(match.group(1))
    return (
        f"best[ext=mp4][height<={height}]/best[height<={height}]/"
        f"{PROGRESSIVE_SELECTOR}"
    )


def _resolution_rank(label: str) -> int:
    match = re.match(r"\s*(\d+)", label or "")
    return int(match.group(1)) if match else 0


def summarize_formats(formats: Optional[Iterable[Dict[str, Any]]]) -> List[QualityOption]:
    """
    Reduce yt-dlp's format list to one entry per resolution label.

    Only mp4/webm/m4a formats are considered; for each resolution the format
    with the largest reported size wins. Result is sorted by the numeric part of
    the label, highest first (labels without a number rank as 0).
    """
    best: Dict[str, QualityOption] = {}

    for f in formats or []:
        if f.get("ext") not in QUALITY_EXTENSIONS:
            continue

        resolution = f.get("resolution") or (f"{f['height']}p" if f.get("height") else "audio only")
        if not resolution or resolution == "audio only":
            continue

        filesize = f.get("filesize") or f.get("filesize_approx") or 0
        current = best.get(resolution)
        if current is None or current.filesize < filesize:
            best[resolution] = QualityOption(
                quality=resolution,
                formatId=f.get("format_id"),
                ext=f.get("ext"),
                filesize=int(filesize),
            )

    return sorted(best.values(), key=lambda q: _resolution_rank(q.quality), reverse=True)


def parse_metadata(info: Dict[str, Any]) -> VideoMetadata:
    """Build VideoMetadata from a --dump-json document, applying defaults."""
    thumbnail = info.get("thumbnail") or ""
    if not thumbnail:
        thumbnails = info.get("thumbnails") or []
        if thumbnails and isinstance(thumbnails[0], dict):
            thumbnail = thumbnails[0].get("url") or ""

    return VideoMetadata(
        title=info.get("title") or "Untitled",
        thumbnail=thumbnail,
        duration=info.get("duration") or 0,
        uploader=info.get("uploader") or "",
        availableQualities=summarize_formats(info.get("formats")),
    )


class ExtractionInvoker:
    """Runs yt-dlp for one request and turns its outcome into artifacts or errors."""

    def __init__(
        self,
        prober: AvailabilityProber,
        store: ArtifactStore,
        runner: Optional[SubprocessRunner] = None,
        metadata_timeout: float = 120.0,
        download_timeout: float = 600.0,
        min_artifact_bytes: int = 30000,
    ):
        self.prober = prober
        self.store = store
        self.runner = runner or SubprocessRunner()
        self.metadata_timeout = metadata_timeout
        self.download_timeout = download_timeout
        self.min_artifact_bytes = min_artifact_bytes

    async def _resolve_command(self) -> List[str]:
        availability = await run_in_threadpool(self.prober.probe_extractor)
        if not availability.available:
            raise ExtractorNotFound("yt-dlp not available", "Please install yt-dlp")
        return self.prober.command_for(availability.method)

    async def _run(self, args: List[str], timeout: float) -> CompletedProcess:
        cmd = await self._resolve_command() + args
        try:
            return await self.runner.run(cmd, timeout=timeout)
        except OSError as e:
            # The tool vanished since the last probe
            self.prober.invalidate()
            raise ExtractorNotFound("yt-dlp not available", str(e))

    async def fetch_metadata(self, url: str) -> VideoMetadata:
        """
        Look up title, thumbnail, duration, uploader and the quality ladder.

        Raises:
            ToolUnavailable: yt-dlp cannot be launched
            MetadataUnavailable: yt-dlp failed, timed out or printed nothing useful
        """
        args = ['--dump-json', '--no-playlist', '--no-warnings', '--', url]
        try:
            result = await self._run(args, timeout=self.metadata_timeout)
        except ExtractorNotFound as e:
            raise ToolUnavailable(e.message, e.detail)
        except asyncio.TimeoutError:
            raise MetadataUnavailable("Failed to get info", "Metadata lookup timed out")

        stdout = result.stdout.decode(errors="ignore").strip()
        stderr = result.stderr.decode(errors="ignore")
        if result.returncode != 0 or not stdout:
            logger.warning(f"Metadata lookup failed for {safe_url_for_log(url)}: {stderr[:200]}")
            raise MetadataUnavailable("Failed to get info", stderr)

        try:
            info = json.loads(stdout.splitlines()[0])
        except (json.JSONDecodeError, IndexError):
            raise MetadataUnavailable("Parse error", stdout)

        return parse_metadata(info)

    def _collect_output(self, token: str, diagnostics: str = "") -> TemporaryArtifact:
        """Post-download validation shared by both strategies."""
        artifact = self.store.find_output(token)
        if artifact is None:
            self.store.discard_token(token)
            raise NoArtifactProduced("No file created", diagnostics)

        if artifact.size < self.min_artifact_bytes:
            logger.warning(f"File too small: {artifact.size} bytes")
            self.store.discard_token(token)
            raise ArtifactTooSmall(
                "Downloaded file is too small to be a valid video",
                f"{artifact.size} bytes"
            )
        return artifact

    async def download(self, request: DownloadRequest, token: str) -> TemporaryArtifact:
        """
        Download a single progressive file into the scratch directory.

        Raises:
            ExtractorNotFound: no invocation strategy works
            ExtractionFailed: yt-dlp exited non-zero
            DownloadTimedOut: yt-dlp did not finish within download_timeout
            NoArtifactProduced: yt-dlp succeeded but wrote no media file
            ArtifactTooSmall: the file is below the minimum plausible size
        """
        self.store.ensure_scratch_dir()
        selector = build_format_selector(request.quality)
        if request.format_id:
            logger.info(f"format_id {request.format_id} requested; using progressive selector {selector}")

        args = [
            '-f', selector,
            '-o', self.store.output_template(token),
            '--no-playlist',
            '--no-warnings',
            '--no-progress',
            '--user-agent', random.choice(USER_AGENTS),
            '--', request.url,
        ]

        try:
            result = await self._run(args, timeout=self.download_timeout)
        except asyncio.TimeoutError:
            self.store.discard_token(token)
            raise DownloadTimedOut(detail=f"yt-dlp did not finish within {self.download_timeout:.0f}s")
        except asyncio.CancelledError:
            self.store.discard_token(token)
            raise

        stderr = result.stderr.decode(errors="ignore")
        if result.returncode != 0:
            logger.warning(f"yt-dlp exited with {result.returncode}: {stderr[:100]}")
            self.store.discard_token(token)
            raise ExtractionFailed(classify_error(stderr), stderr)

        return self._collect_output(token, stderr)

    async def download_with_library(self, request: DownloadRequest, token: str) -> TemporaryArtifact:
        """Secondary strategy: same progressive download through the yt_dlp library."""
        self.store.ensure_scratch_dir()
        ydl_opts = {
            'format': build_format_selector(request.quality),
            'outtmpl': self.store.output_template(token),
            'noplaylist': True,
            'quiet': True,
            'no_warnings': True,
            'noprogress': True,
            'http_headers': {'User-Agent': random.choice(USER_AGENTS)},
        }

        def _download():
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                ydl.download([request.url])

        try:
            await asyncio.wait_for(run_in_threadpool(_download), timeout=self.download_timeout)
        except yt_dlp.utils.DownloadError as e:
            self.store.discard_token(token)
            raise ExtractionFailed(classify_error(str(e)), str(e))
        except asyncio.TimeoutError:
            # The worker thread cannot be interrupted; its output is left for the sweep
            raise DownloadTimedOut(detail=f"yt_dlp did not finish within {self.download_timeout:.0f}s")

        return self._collect_output(token)


__all__ = [
    "CompletedProcess",
    "SubprocessRunner",
    "ExtractionInvoker",
    "classify_error",
    "build_format_selector",
    "summarize_formats",
    "parse_metadata",
]
