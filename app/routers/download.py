"""
Download router module.

Provides the endpoint that turns a video URL into a file download:
- GET /api/download: run yt-dlp into the scratch directory, stream the single
  progressive file to the client, then delete it
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from app.context import AppContext
from app.dependencies import get_context, get_logger_for_request
from app.exceptions import DownloadTimedOut, DownloaderError, ExtractionFailed, ExtractorNotFound
from app.models import DownloadError, DownloadRequest
from app.services.artifact_service import TemporaryArtifact
from app.utils.async_utils import ClientDisconnected, run_until_disconnect
from app.utils.filename_utils import display_name_for_artifact, encode_content_disposition_filename
from app.utils.platform_utils import detect_platform
from app.utils.url_utils import require_url, safe_url_for_log


router = APIRouter(prefix="/api", tags=["Download"])

MEDIA_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
}


def _error_response(exc: DownloaderError, platform: str = None) -> JSONResponse:
    if isinstance(exc, ExtractorNotFound):
        hint = "Please install yt-dlp"
    else:
        hint = exc.detail or None
    payload = DownloadError(error=exc.message, hint=hint, platform=platform)
    return JSONResponse(
        content=payload.model_dump(exclude_none=True),
        status_code=exc.status_code,
        headers={"Cache-Control": "no-store"}
    )


async def _extract(
    context: AppContext,
    download_request: DownloadRequest,
    token: str,
    log: logging.LoggerAdapter
) -> TemporaryArtifact:
    """
    Subprocess strategy first; the yt_dlp library only after a failed run.

    A timed out run is not retried, so a request waits at most one download_timeout.
    """
    try:
        return await context.invoker.download(download_request, token)
    except DownloadTimedOut:
        raise
    except ExtractionFailed as e:
        if not context.settings.library_fallback_enabled:
            raise
        log.warning(f"yt-dlp CLI failed ({e.message}), retrying with yt_dlp library")
        return await context.invoker.download_with_library(download_request, token)


@router.get("/download")
async def download(
    request: Request,
    url: str = Query(None, description="Video page URL"),
    format_id: str = Query(None, description="Format identifier from /api/info"),
    quality: str = Query(None, description="Quality hint, e.g. 720p"),
    context: AppContext = Depends(get_context),
    log: logging.LoggerAdapter = Depends(get_logger_for_request),
):
    """
    Download a video and stream it as an attachment.

    The response body is the downloaded file; it is deleted from the scratch
    directory once the stream ends, fails or the client disconnects.

    Returns:
        StreamingResponse with video/mp4 (video/webm for webm files)

    Errors:
        400 {error, hint, platform} for invalid URLs and failed downloads
    """
    try:
        url = require_url(url)
    except DownloaderError as e:
        return _error_response(e)

    platform = detect_platform(url).value
    download_request = DownloadRequest(url=url, format_id=format_id, quality=quality)
    token = context.store.new_token()
    log.info(f"Download {safe_url_for_log(url)} platform={platform} token={token}")

    try:
        artifact = await run_until_disconnect(
            request,
            _extract(context, download_request, token, log)
        )
    except ClientDisconnected:
        log.info(f"Client disconnected, download {token} cancelled")
        context.store.discard_token(token)
        return JSONResponse(content={"error": "Client disconnected"}, status_code=499)
    except DownloaderError as e:
        log.warning(f"Download failed: {e.message} {e.detail[:200]}")
        return _error_response(e, platform)

    filename = display_name_for_artifact(artifact.path, token)
    log.info(f"Serving {artifact.name} ({artifact.size} bytes) as {filename}")

    return StreamingResponse(
        context.store.serve_and_delete(artifact),
        media_type=MEDIA_TYPES.get(artifact.ext, "video/mp4"),
        headers={
            "Content-Disposition": encode_content_disposition_filename(filename),
            "Content-Length": str(artifact.size),
            "Cache-Control": "no-store",
        }
    )
