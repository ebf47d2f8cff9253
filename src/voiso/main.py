"""
FastAPI Application Entry Point.

Usage:
    uvicorn voiso.main:app --host 0.0.0.0 --port 8000
    voiso --serve --port 8000

Routers:
    - api/routes.py: generate-audio, storage, health, metrics
    - api/voices.py: voice management
    - api/account.py: quota, plan, history

Errors raised as VoisoError anywhere below a route are rendered by one
handler using the error's status and to_dict(). Anything else becomes
500 {"error": "Internal server error"}.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voiso import __version__
from voiso.api.account import router as account_router
from voiso.api.routes import router
from voiso.api.voices import router as voices_router
from voiso.core.logging import configure_logging, fail, get_logger, info
from voiso.services.errors import ErrorCode, VoisoError

_LOG = get_logger("voiso.main")

# Headers browsers send when calling the generation endpoint directly
CORS_ALLOW_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "x-supabase-client-platform",
    "x-supabase-client-platform-version",
    "x-supabase-client-runtime",
    "x-supabase-client-runtime-version",
]


async def _voiso_error_handler(request: Request, exc: VoisoError) -> JSONResponse:
    if exc.status_code >= 500:
        fail(_LOG, "request_error", path=request.url.path, code=exc.code, error=exc.message)
    else:
        info(_LOG, "request_rejected", path=request.url.path, status=exc.status_code, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    fail(
        _LOG,
        "request_failed",
        path=request.url.path,
        code=ErrorCode.INTERNAL_ERROR,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    configure_logging()

    app = FastAPI(title="voiso", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    app.add_exception_handler(VoisoError, _voiso_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(router)
    app.include_router(voices_router)
    app.include_router(account_router)

    return app


# Global application instance for ASGI servers
app = create_app()
