"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn workspace_relay.main:app --reload
     or:  workspace-relay
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from workspace_relay.core.config import settings
from workspace_relay.core.logging import configure_logging
from workspace_relay.environments.base import RelayError
from workspace_relay.routers import google_auth, drive, sheets


logger = logging.getLogger("relay.main")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------
# A misconfigured relay still starts: the banner and /health stay up, and
# the problems are logged once here.
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, debug=settings.DEBUG)

    problems = settings.config_problems()
    for problem in problems:
        logger.warning(f"Misconfiguration: {problem}")
    if not problems:
        logger.info(f"{settings.APP_NAME} ready (auth mode: {settings.AUTH_MODE})")

    yield

    logger.info(f"{settings.APP_NAME} shutting down")


# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The plugin host calls the relay from its own origin with an Authorization
# header, so those must be allowed. Credentials cannot be combined with "*".
_origins = settings.cors_origins or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials="*" not in _origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# ERROR TRANSLATION
# ---------------------------------------------------------------------------
# Services raise RelayError subclasses; this is the one place they become
# HTTP responses: {"error": ..., "details"?: ..., "authUrl"?: ...}
@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# google_auth.router: /auth/google, /auth/google/callback
# drive.router: /api/drive/files
# sheets.router: /api/sheets/read, /api/sheets/write, /api/sheets/update
app.include_router(google_auth.router)
app.include_router(drive.router)
app.include_router(sheets.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINTS
# ---------------------------------------------------------------------------
@app.get("/", response_class=PlainTextResponse, tags=["health"])
def root_banner():
    """Plain-text banner for platform health checks."""
    return f"{settings.APP_NAME} is running."


@app.get("/health", tags=["health"])
def health_check():
    """
    Health check with configuration status.

    Always 200, even when Google credentials are missing, so the process
    is never restarted for a configuration problem.
    """
    return {
        "status": "ok",
        "google_configured": settings.google_configured,
        "auth_mode": settings.AUTH_MODE,
    }


def run() -> None:
    """Console entry point: serve on HOST:PORT."""
    uvicorn.run(
        "workspace_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
