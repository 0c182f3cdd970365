"""
Static router module.

Serves the front-end from PUBLIC_DIR. HTML and JS files are rendered with the
analytics ids and the site name for the requesting host; everything else is
sent as-is.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from app.context import AppContext
from app.dependencies import get_context
from app.exceptions import DownloaderError
from app.services.site_service import (
    content_type_for,
    hostname_from_host_header,
    is_template,
    render_template,
    resolve_asset,
)


router = APIRouter(tags=["Static"])


@router.get("/{path:path}", include_in_schema=False)
async def static_asset(path: str, request: Request, context: AppContext = Depends(get_context)):
    try:
        file_path = resolve_asset(context.settings.public_dir, path)
    except DownloaderError as e:
        return PlainTextResponse(e.message, status_code=e.status_code)

    media_type = content_type_for(file_path)
    if is_template(file_path):
        hostname = hostname_from_host_header(request.headers.get("host"))
        body = await run_in_threadpool(render_template, file_path, context.site_tokens(hostname))
        return Response(content=body, media_type=media_type)

    return FileResponse(file_path, media_type=media_type)
