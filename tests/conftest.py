"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Settings pointing at per-test scratch and public directories
- A controllable clock for sweep tests, and a frozen wall clock for rate limiting
- Fake availability prober and subprocess runner so no real yt-dlp is needed
- Test client fixture for the FastAPI app
"""

from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.config import Settings
from app.context import AppContext
from app.services.artifact_service import ArtifactStore
from app.services.availability_service import AvailabilityProber, InvocationMethod, ToolAvailability
from app.services.rate_limit_service import RateLimiter
from app.services.scheduler_service import SweepScheduler
from app.services.ytdlp_service import CompletedProcess, ExtractionInvoker


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProber(AvailabilityProber):
    """Prober with fixed answers; never shells out."""

    def __init__(self, method=InvocationMethod.DIRECT, transcoder=True):
        super().__init__()
        self.method = method
        self.transcoder = transcoder
        self.extractor_probes = 0
        self.invalidated = 0

    def probe_extractor(self) -> ToolAvailability:
        self.extractor_probes += 1
        return ToolAvailability(available=self.method is not InvocationMethod.NONE, method=self.method)

    def probe_transcoder(self) -> bool:
        return self.transcoder

    def invalidate(self) -> None:
        self.invalidated += 1


def write_output(cmd, size, title="Test Video", video_id="abc123", ext="mp4"):
    """Create the file yt-dlp would have written for the -o template in cmd."""
    template = cmd[cmd.index("-o") + 1]
    path = (
        template.replace("%(title).80B", title)
        .replace("%(id)s", video_id)
        .replace("%(ext)s", ext)
    )
    with open(path, "wb") as f:
        f.write(b"\0" * size)
    return path


class FakeRunner:
    """
    Stand-in for SubprocessRunner.

    Each call records argv and timeout, then either runs `action(cmd)` (which may
    write files or raise) or returns `result`.
    """

    def __init__(self, result=None, action=None):
        self.result = result or CompletedProcess(0, b"", b"")
        self.action = action
        self.calls = []

    async def run(self, cmd, timeout):
        self.calls.append((list(cmd), timeout))
        if self.action is not None:
            outcome = self.action(cmd)
            if hasattr(outcome, "__await__"):
                outcome = await outcome
            if isinstance(outcome, CompletedProcess):
                return outcome
        return self.result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def frozen_time(clock):
    """Route time.time() through the fake clock; the rate limit storage reads it."""
    with patch("time.time", clock):
        yield clock


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "temp"
    path.mkdir()
    return path


@pytest.fixture
def public_dir(tmp_path):
    """Public directory with templated and plain assets, plus a file outside it."""
    path = tmp_path / "public"
    path.mkdir()
    (path / "index.html").write_text(
        "<title>__SITE_NAME__</title><script>gtag('config', '__GA_ID__');</script>"
        "<ins data-ad-client=\"__ADSENSE_CLIENT__\"></ins>",
        encoding="utf-8",
    )
    (path / "app.js").write_text("console.log('__SITE_NAME__');", encoding="utf-8")
    (path / "style.css").write_text("body { color: red; } /* __SITE_NAME__ */", encoding="utf-8")
    (tmp_path / "secret.txt").write_text("top secret", encoding="utf-8")
    return path


@pytest.fixture
def settings(temp_dir, public_dir):
    return Settings(
        TEMP_DIR=str(temp_dir),
        PUBLIC_DIR=str(public_dir),
        GA_MEASUREMENT_ID="G-TEST123",
        ADSENSE_CLIENT_ID="ca-pub-999",
        DEFAULT_SITE_NAME="Downloader-World",
        DOMAIN_MAPPINGS="example.com=Example Videos,grab.io=Grab",
        RATE_LIMIT_MAX_REQUESTS=100,
        RATE_LIMIT_WINDOW_SECONDS=60,
        LIBRARY_FALLBACK_ENABLED=True,
    )


@pytest.fixture
def store(temp_dir, clock):
    return ArtifactStore(str(temp_dir), clock=clock)


@pytest.fixture
def prober():
    return FakeProber()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def invoker(prober, store, runner):
    return ExtractionInvoker(prober, store, runner=runner)


@pytest.fixture
def context(settings, store, prober, invoker):
    return AppContext(
        settings=settings,
        store=store,
        prober=prober,
        invoker=invoker,
        rate_limiter=RateLimiter(max_requests=100, window_seconds=60),
        scheduler=SweepScheduler(store),
    )


@pytest_asyncio.fixture
async def client(context):
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server.
    """
    from main import create_app

    app = create_app(context=context)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_ytdlp_info():
    """Mock `yt-dlp --dump-json` document."""
    return {
        "id": "dQw4w9WgXcQ",
        "title": "Test Video Title",
        "duration": 212,
        "uploader": "Test Channel",
        "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hq.jpg",
        "formats": [
            {"format_id": "18", "ext": "mp4", "height": 360, "filesize": 10_000},
            {"format_id": "22", "ext": "mp4", "resolution": "1280x720", "filesize": 50_000},
            {"format_id": "136", "ext": "mp4", "resolution": "1280x720", "filesize_approx": 80_000},
            {"format_id": "247", "ext": "webm", "resolution": "1280x720", "filesize": 60_000},
            {"format_id": "140", "ext": "m4a", "resolution": "audio only", "filesize": 3_000},
            {"format_id": "sb0", "ext": "mhtml", "resolution": "160x90"},
            {"format_id": "137", "ext": "mp4", "height": 1080},
        ],
    }


@pytest.fixture
def youtube_url():
    """Sample YouTube URL for testing."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def tiktok_url():
    """Sample TikTok URL for testing."""
    return "https://www.tiktok.com/@user/video/1234567890"


@pytest.fixture
def instagram_url():
    """Sample Instagram URL for testing."""
    return "https://www.instagram.com/p/ABC123/"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep a developer's .env or shell settings out of the tests."""
    for key in ("TEMP_DIR", "PUBLIC_DIR", "DOMAIN_MAPPINGS", "LIBRARY_FALLBACK_ENABLED"):
        monkeypatch.delenv(key, raising=False)
    yield


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )


@pytest.fixture
def fake_output():
    """write_output helper for tests that simulate yt-dlp writing a file."""
    return write_output
