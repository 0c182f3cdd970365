"""
Availability service module.

Answers "can we run yt-dlp, and how?" and "is ffmpeg installed?".

yt-dlp is located by trying three invocation strategies in a fixed order:
1. bare `yt-dlp` on PATH            -> InvocationMethod.DIRECT
2. the configured YTDLP_PATH        -> InvocationMethod.CUSTOM_PATH
3. `PYTHON_PATH -m yt_dlp`          -> InvocationMethod.INTERPRETER_MODULE

Probes shell out synchronously with a short timeout, so results are cached for
PROBE_CACHE_TTL_SECONDS. Installing or removing a tool therefore takes up to one
TTL to be noticed unless invalidate() is called.
"""

import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from app.utils.logging_utils import get_logger


logger = get_logger("availability")


class InvocationMethod(str, Enum):
    DIRECT = "direct"
    CUSTOM_PATH = "custom-path"
    INTERPRETER_MODULE = "interpreter-module"
    NONE = "none"


@dataclass(frozen=True)
class ToolAvailability:
    available: bool
    method: InvocationMethod


class AvailabilityProber:
    """Single access point for tool availability, with a TTL cache."""

    def __init__(
        self,
        ytdlp_path: str = "yt-dlp",
        python_path: str = "python3",
        ffmpeg_path: str = "ffmpeg",
        timeout: float = 5.0,
        cache_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ytdlp_path = ytdlp_path
        self.python_path = python_path
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._extractor: Optional[Tuple[float, ToolAvailability]] = None
        self._transcoder: Optional[Tuple[float, bool]] = None

    def command_for(self, method: InvocationMethod) -> List[str]:
        """argv prefix used to launch yt-dlp with the given strategy."""
        if method is InvocationMethod.DIRECT:
            return ["yt-dlp"]
        if method is InvocationMethod.CUSTOM_PATH:
            return [self.ytdlp_path]
        if method is InvocationMethod.INTERPRETER_MODULE:
            return [self.python_path, "-m", "yt_dlp"]
        return []

    def _strategies(self) -> List[InvocationMethod]:
        return [
            InvocationMethod.DIRECT,
            InvocationMethod.CUSTOM_PATH,
            InvocationMethod.INTERPRETER_MODULE,
        ]

    def _runs(self, cmd: List[str]) -> bool:
        """Run a version probe; True only on a clean exit within the timeout."""
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                timeout=self.timeout,
            )
            return result.returncode == 0
        except subprocess.TimeoutExpired:
            logger.warning(f"Probe timed out after {self.timeout}s: {' '.join(cmd)}")
            return False
        except OSError:
            return False

    def _fresh(self, stamped: Optional[tuple]) -> bool:
        return stamped is not None and (self._clock() - stamped[0]) < self.cache_ttl

    def probe_extractor(self) -> ToolAvailability:
        """
        Find the first working invocation strategy for yt-dlp.

        Returns:
            ToolAvailability(available=False, method=NONE) when every strategy fails.
        """
        with self._lock:
            if self._fresh(self._extractor):
                return self._extractor[1]

        result = ToolAvailability(available=False, method=InvocationMethod.NONE)
        for method in self._strategies():
            if self._runs(self.command_for(method) + ["--version"]):
                result = ToolAvailability(available=True, method=method)
                break

        if result.available:
            logger.info(f"yt-dlp available via {result.method.value}")
        else:
            logger.warning("yt-dlp not found by any invocation strategy")

        with self._lock:
            self._extractor = (self._clock(), result)
        return result

    def probe_transcoder(self) -> bool:
        """Check for ffmpeg by bare name, then by the configured path."""
        with self._lock:
            if self._fresh(self._transcoder):
                return self._transcoder[1]

        candidates = ["ffmpeg"]
        if self.ffmpeg_path and self.ffmpeg_path != "ffmpeg":
            candidates.append(self.ffmpeg_path)
        available = any(self._runs([candidate, "-version"]) for candidate in candidates)

        with self._lock:
            self._transcoder = (self._clock(), available)
        return available

    def invalidate(self) -> None:
        """Forget cached probe results so the next call re-probes."""
        with self._lock:
            self._extractor = None
            self._transcoder = None
