import uuid
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.context import AppContext
from app.exceptions import RateLimited
from app.routers import download_router, info_router, static_router
from app.services.rate_limit_service import client_key
from app.utils.logging_utils import get_request_logger, setup_logger

# Load environment variables from .env file
load_dotenv()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """Build the application; tests pass their own settings or a prepared context."""
    if context is None:
        settings = settings or get_settings()
        context = AppContext.from_settings(settings)
    settings = context.settings

    logger = setup_logger(settings.log_level)

    app = FastAPI(title="Downloader-World", docs_url=None, redoc_url=None)
    app.state.context = context

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        key = client_key(request)
        if not context.rate_limiter.hit(key):
            get_request_logger(request.state.request_id).warning(f"Rate limit exceeded for {key}")
            exc = RateLimited()
            return JSONResponse(
                content={"error": exc.message},
                status_code=exc.status_code,
                headers={
                    "Cache-Control": "no-store",
                    "Retry-After": str(context.rate_limiter.retry_after(key)),
                }
            )
        return await call_next(request)

    # Registered last so it wraps the rate limiter: 429s carry the headers too
    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request.state.request_id = uuid.uuid4().hex[:8]
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", "-")
        get_request_logger(request_id).exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(content={"error": "Server error"}, status_code=500)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_credentials=settings.allowed_origin != "*",
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(info_router)
    app.include_router(download_router)
    # Catch-all, must stay last
    app.include_router(static_router)

    @app.on_event("startup")
    async def startup_event():
        """Prepare the scratch directory and start the periodic sweep."""
        logger.info("Starting application...")
        context.store.ensure_scratch_dir()
        context.scheduler.sweep()
        try:
            context.scheduler.start()
        except Exception as e:
            logger.warning(f"Failed to start sweep scheduler: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down application...")
        context.scheduler.stop()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
