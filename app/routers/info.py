"""
Info router module.

Provides the endpoints the front-end calls before a download:
- GET /api/check: platform detection plus yt-dlp / ffmpeg availability
- GET /api/info: title, thumbnail, duration, uploader and quality ladder
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.context import AppContext
from app.dependencies import get_context, get_logger_for_request
from app.exceptions import DownloaderError, InvalidInput
from app.models import ApiError, CheckResponse, InfoResponse
from app.utils.platform_utils import detect_platform
from app.utils.url_utils import require_url, safe_url_for_log


router = APIRouter(prefix="/api", tags=["Info"])

NO_STORE = {"Cache-Control": "no-store"}


def _error_response(exc: DownloaderError) -> JSONResponse:
    payload = ApiError(error=exc.message, detail=exc.detail or None)
    return JSONResponse(
        content=payload.model_dump(exclude_none=True),
        status_code=exc.status_code,
        headers=NO_STORE
    )


@router.get("/check", response_model=CheckResponse)
async def check(
    url: str = Query(None, description="Video page URL"),
    context: AppContext = Depends(get_context),
    log: logging.LoggerAdapter = Depends(get_logger_for_request),
):
    """
    Report the URL's platform and whether the server can handle it.

    Returns ok=false with error "yt-dlp not installed" when no invocation
    strategy works; a missing ffmpeg is reported but not fatal.
    """
    try:
        url = require_url(url)
    except InvalidInput as e:
        return _error_response(e)

    platform = detect_platform(url)
    availability = await run_in_threadpool(context.prober.probe_extractor)
    transcoder = await run_in_threadpool(context.prober.probe_transcoder)

    log.info(
        f"Check {safe_url_for_log(url)}: platform={platform.value} "
        f"yt-dlp={availability.method.value} ffmpeg={transcoder}"
    )

    response = CheckResponse(
        ok=availability.available,
        platform=platform.value,
        toolAvailable=availability.available,
        transcoderAvailable=transcoder,
        invocationMethod=availability.method.value,
        message=f"Platform: {platform.value}, FFmpeg: {'available' if transcoder else 'not found'}",
        error=None if availability.available else "yt-dlp not installed",
    )
    return JSONResponse(content=response.model_dump(exclude_none=True), headers=NO_STORE)


@router.get("/info", response_model=InfoResponse)
async def info(
    url: str = Query(None, description="Video page URL"),
    context: AppContext = Depends(get_context),
    log: logging.LoggerAdapter = Depends(get_logger_for_request),
):
    """Metadata and available qualities for a video, via `yt-dlp --dump-json`."""
    try:
        url = require_url(url)
        platform = detect_platform(url)
        metadata = await context.invoker.fetch_metadata(url)
    except DownloaderError as e:
        log.warning(f"Info failed: {e.message} {e.detail[:200]}")
        return _error_response(e)

    response = InfoResponse(platform=platform.value, **metadata.model_dump())
    log.info(f"Info {safe_url_for_log(url)}: {len(response.availableQualities)} qualities")
    return JSONResponse(content=response.model_dump(), headers=NO_STORE)
