from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import AppSettings
from .dependencies import get_settings
from .errors import InputValidationError, LogformError, StorageProvisioningError, public_message
from .routes import analyze, database, system

logger = logging.getLogger(__name__)


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error_response(request: Request, exc: Exception, status_code: int) -> JSONResponse:
    settings: AppSettings = request.app.state.settings
    body = {"error": public_message(exc, production=settings.is_production, locale=settings.message_locale)}
    if isinstance(exc, StorageProvisioningError) and exc.manual_required and exc.sql:
        body["sql"] = exc.sql
    return JSONResponse(status_code=status_code, content=body)


async def _handle_app_error(request: Request, exc: LogformError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.detail)
    return _error_response(request, exc, exc.status_code)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors()[:5]:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    logger.info("Rejected %s %s: %s", request.method, request.url.path, "; ".join(problems))
    wrapped = InputValidationError("Invalid request", detail="; ".join(problems))
    return _error_response(request, wrapped, 400)


async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(request, exc, 500)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    if settings is None:
        settings = get_settings()
    configure_logging(settings)

    app = FastAPI(title="Logform", version="0.1.0")
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    origins = list(dict.fromkeys([*settings.allowed_origins, "http://localhost", "http://127.0.0.1"]))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LogformError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(Exception, _handle_unexpected)

    app.include_router(system.router)
    app.include_router(analyze.router)
    app.include_router(database.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("BACKEND_PORT", "8000"))
    uvicorn.run("logform.app:app", host="0.0.0.0", port=port, reload=True)
