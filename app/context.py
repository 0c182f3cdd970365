"""
Application context.

Bundles the long-lived collaborators built once at startup and shared by every
request: the scratch directory store, the availability prober, the extraction
invoker, the rate limiter and the sweep scheduler.
"""

from dataclasses import dataclass

from app.config import Settings
from app.services.artifact_service import ArtifactStore
from app.services.availability_service import AvailabilityProber
from app.services.rate_limit_service import RateLimiter
from app.services.scheduler_service import SweepScheduler
from app.services.site_service import SiteTokens
from app.services.ytdlp_service import ExtractionInvoker


@dataclass
class AppContext:
    settings: Settings
    store: ArtifactStore
    prober: AvailabilityProber
    invoker: ExtractionInvoker
    rate_limiter: RateLimiter
    scheduler: SweepScheduler

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        store = ArtifactStore(settings.temp_dir)
        prober = AvailabilityProber(
            ytdlp_path=settings.ytdlp_path,
            python_path=settings.python_path,
            ffmpeg_path=settings.ffmpeg_path,
            timeout=settings.probe_timeout_seconds,
            cache_ttl=settings.probe_cache_ttl_seconds,
        )
        invoker = ExtractionInvoker(
            prober,
            store,
            metadata_timeout=settings.metadata_timeout_seconds,
            download_timeout=settings.download_timeout_seconds,
            min_artifact_bytes=settings.min_artifact_bytes,
        )
        rate_limiter = RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        scheduler = SweepScheduler(
            store,
            interval_minutes=settings.cleanup_interval_minutes,
            max_age_minutes=settings.artifact_max_age_minutes,
        )
        return cls(
            settings=settings,
            store=store,
            prober=prober,
            invoker=invoker,
            rate_limiter=rate_limiter,
            scheduler=scheduler,
        )

    def site_tokens(self, hostname: str = None) -> SiteTokens:
        return SiteTokens(
            ga_id=self.settings.ga_measurement_id,
            adsense_client=self.settings.adsense_client_id,
            site_name=self.settings.site_name_for_host(hostname),
        )
