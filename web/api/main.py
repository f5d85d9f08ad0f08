"""FastAPI captive portal API - settings, ads, admin login, social login and uploaded images."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

import config
from portal.exceptions import PortalError
from portal.models import Database
from web.api.ads_routes import router as ads_router
from web.api.auth_routes import router as auth_router
from web.api.emails_routes import router as emails_router
from web.api.oauth_routes import router as oauth_router
from web.api.settings_routes import router as settings_router
from web.api.upload_routes import router as upload_router

logger = logging.getLogger("portal.http")

SLOW_REQUEST_SECONDS = 0.1


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log every request and flag slow ones."""

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        client = request.client.host if request.client else "?"
        logger.info(
            "[%s] %s (Origin: %s, From: %s)",
            request.method,
            request.url.path,
            request.headers.get("origin", ""),
            client,
        )
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning("Slow request: %s took %.0fms", request.url.path, elapsed * 1000)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    db: Database = app.state.db
    try:
        await db.init()
        logger.info("Database tables ensured")
    except (SQLAlchemyError, OSError) as e:
        # Start anyway; endpoints that need the store fail individually
        logger.warning("Database initialization failed, continuing without it: %s", e)
    yield
    await db.dispose()


async def _portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        loc = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request: {loc} {errors[0].get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"success": False, "message": message})


async def _database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Database error"})


def create_app(database_url: str | None = None, upload_dir: str | Path | None = None) -> FastAPI:
    """Build the API app with its own database handle and image directory."""
    app = FastAPI(title="Captive Portal API", lifespan=lifespan)
    app.state.db = Database(database_url or config.DATABASE_URL)

    images = Path(upload_dir or config.UPLOAD_DIR).resolve()
    images.mkdir(parents=True, exist_ok=True)
    app.state.upload_dir = images
    logger.info("Serving static files from: %s", images)

    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Content-Type", "Content-Length", "Accept-Encoding", "Authorization", "X-CSRF-Token"],
    )

    app.add_exception_handler(PortalError, _portal_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)

    app.include_router(settings_router)
    app.include_router(upload_router)
    app.include_router(auth_router)
    app.include_router(ads_router)
    app.include_router(emails_router)
    app.include_router(oauth_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.mount("/img", StaticFiles(directory=str(images)), name="img")
    return app


app = create_app()
