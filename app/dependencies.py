"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- The shared AppContext built at startup
- A request-scoped logger tagged with the request id set by the middleware
"""

import logging

from fastapi import Depends, Request

from app.context import AppContext
from app.utils.logging_utils import get_request_logger


def get_context(request: Request) -> AppContext:
    """AppContext stored on the application by create_app()."""
    return request.app.state.context


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def get_logger_for_request(request_id: str = Depends(get_request_id)) -> logging.LoggerAdapter:
    return get_request_logger(request_id)
