"""RxDesk API -- Main Application Entry Point

Creates the FastAPI application, configures logging and CORS middleware,
installs the ``{"success": false, "error": ...}`` error envelope, and
registers all API route modules under the /api/v1 prefix.

Run with::

    uvicorn rxdesk.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rxdesk.core.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup:
      - Start the background issue monitor (when enabled).

    Shutdown:
      - Stop the monitor and close the Redis client backing issue history.
    """
    from rxdesk.services.issueHistoryStore import close_history_store
    from rxdesk.services.issueMonitor import start_issue_monitor, stop_issue_monitor

    if settings.issue_monitor_enabled:
        await start_issue_monitor()

    yield

    await stop_issue_monitor()
    await close_history_store()


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": f"{location}: {message}" if location else message,
        },
    )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health():
    """Lightweight health check for load balancers and readiness probes."""
    return {"status": "ok", "version": settings.app_version}


# ---------------------------------------------------------------------------
# Register API route modules
# ---------------------------------------------------------------------------
# Each router already defines its own prefix (e.g. /order-reviews, /vitals)
# and tags.  We mount them under the shared /api/v1 prefix so the full paths
# become /api/v1/order-reviews, /api/v1/vitals, etc.
# ---------------------------------------------------------------------------

from rxdesk.api.routes import (  # noqa: E402
    admin,
    availability,
    billing,
    medicationCatalog,
    orderReviews,
    providerOrders,
    vitals,
)

_prefix = settings.api_v1_prefix

app.include_router(availability.router, prefix=_prefix)
app.include_router(orderReviews.router, prefix=_prefix)
app.include_router(providerOrders.router, prefix=_prefix)
app.include_router(admin.router, prefix=_prefix)
app.include_router(medicationCatalog.router, prefix=_prefix)
app.include_router(vitals.router, prefix=_prefix)
app.include_router(billing.router, prefix=_prefix)
