from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, Request

from .config import AppSettings, load_settings
from .errors import OriginNotAllowedError, PayloadTooLargeError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


async def limit_request_size(request: Request, settings: AppSettings = Depends(get_settings)) -> None:
    """Reject requests whose declared Content-Length exceeds MAX_REQUEST_BYTES, before the handler runs."""
    raw = request.headers.get("content-length")
    if raw is None:
        return
    try:
        length = int(raw)
    except ValueError:
        return
    if length > settings.max_request_bytes:
        logger.info("Rejected request body of %d bytes (limit %d)", length, settings.max_request_bytes)
        raise PayloadTooLargeError("Request body is too large", detail=f"{length} bytes")


async def check_origin(request: Request, settings: AppSettings = Depends(get_settings)) -> None:
    """In production only configured frontend origins may call the API."""
    if not settings.is_production:
        return
    origin = request.headers.get("origin")
    if origin and origin.rstrip("/") in {o.rstrip("/") for o in settings.allowed_origins}:
        return
    logger.warning("Rejected request from origin %r", origin)
    raise OriginNotAllowedError("Origin not allowed", detail=origin)
