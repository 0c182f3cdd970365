"""
Unit tests for app/services/availability_service.py.

subprocess.run is patched so the probes never touch real binaries.
"""

import subprocess

from unittest.mock import MagicMock, patch

from app.services.availability_service import AvailabilityProber, InvocationMethod


def completed(returncode):
    result = MagicMock()
    result.returncode = returncode
    return result


def fake_run(working):
    """subprocess.run stand-in: commands whose argv[0] is in `working` exit 0."""
    calls = []

    def run(cmd, **kwargs):
        calls.append(list(cmd))
        if cmd[0] not in working:
            raise FileNotFoundError(2, "No such file or directory", cmd[0])
        return completed(0)

    return run, calls


class TestProbeExtractor:
    """Invocation strategy order and caching."""

    def _prober(self, clock=None):
        kwargs = {"clock": clock} if clock else {}
        return AvailabilityProber(
            ytdlp_path="/opt/bin/yt-dlp",
            python_path="/usr/bin/python3",
            ffmpeg_path="/opt/bin/ffmpeg",
            **kwargs,
        )

    def test_direct_first(self):
        run, calls = fake_run({"yt-dlp", "/opt/bin/yt-dlp"})
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            result = self._prober().probe_extractor()

        assert result.available
        assert result.method is InvocationMethod.DIRECT
        assert calls == [["yt-dlp", "--version"]]

    def test_custom_path_second(self):
        run, calls = fake_run({"/opt/bin/yt-dlp"})
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            result = self._prober().probe_extractor()

        assert result.method is InvocationMethod.CUSTOM_PATH
        assert calls == [["yt-dlp", "--version"], ["/opt/bin/yt-dlp", "--version"]]

    def test_interpreter_module_third(self):
        run, calls = fake_run({"/usr/bin/python3"})
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            prober = self._prober()
            result = prober.probe_extractor()

        assert result.method is InvocationMethod.INTERPRETER_MODULE
        assert calls[-1] == ["/usr/bin/python3", "-m", "yt_dlp", "--version"]
        assert prober.command_for(result.method) == ["/usr/bin/python3", "-m", "yt_dlp"]

    def test_none_available(self):
        run, _ = fake_run(set())
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            result = self._prober().probe_extractor()

        assert not result.available
        assert result.method is InvocationMethod.NONE

    def test_non_zero_exit_is_failure(self):
        with patch("app.services.availability_service.subprocess.run", return_value=completed(1)):
            assert not self._prober().probe_extractor().available

    def test_timeout_is_failure(self):
        with patch(
            "app.services.availability_service.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["yt-dlp"], 5),
        ):
            assert not self._prober().probe_extractor().available

    def test_cached_until_ttl(self, clock):
        run, calls = fake_run({"yt-dlp"})
        prober = self._prober(clock=clock)
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            prober.probe_extractor()
            prober.probe_extractor()
            assert len(calls) == 1

            clock.advance(301)
            prober.probe_extractor()
            assert len(calls) == 2

    def test_invalidate(self, clock):
        run, calls = fake_run({"yt-dlp"})
        prober = self._prober(clock=clock)
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            prober.probe_extractor()
            prober.invalidate()
            prober.probe_extractor()
        assert len(calls) == 2


class TestProbeTranscoder:
    """ffmpeg detection."""

    def test_bare_name(self):
        run, calls = fake_run({"ffmpeg"})
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            assert AvailabilityProber(ffmpeg_path="/opt/bin/ffmpeg").probe_transcoder()
        assert calls == [["ffmpeg", "-version"]]

    def test_configured_path(self):
        run, calls = fake_run({"/opt/bin/ffmpeg"})
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            assert AvailabilityProber(ffmpeg_path="/opt/bin/ffmpeg").probe_transcoder()
        assert calls[-1] == ["/opt/bin/ffmpeg", "-version"]

    def test_missing_is_not_fatal(self):
        run, _ = fake_run(set())
        with patch("app.services.availability_service.subprocess.run", side_effect=run):
            assert AvailabilityProber().probe_transcoder() is False

    def test_command_for_none(self):
        assert AvailabilityProber().command_for(InvocationMethod.NONE) == []
