"""
Point d'entree FastAPI / FastAPI entry point.
CoverDesk - Gestion des contrats et sinistres d'assurance location.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from coverdesk.api import api_router
from coverdesk.config import settings
from coverdesk.database import init_db
from coverdesk.logging_config import configure_logging, request_id_var
from coverdesk.rate_limit import limiter
from coverdesk.services.errors import LifecycleError

configure_logging(settings.DEBUG)
logger = logging.getLogger("coverdesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialisation / Startup."""
    if not settings.DEBUG and settings.SECRET_KEY == "change-me-in-production":
        raise RuntimeError("CRITICAL: SECRET_KEY must be changed in production!")
    await init_db()
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Contrats, sinistres et reparations / Contracts, claims and repairs",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    """Erreurs metier -> HTTP / Domain errors -> HTTP."""
    if exc.status_code >= 500:
        logger.warning("%s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """X-Request-ID, duree et headers de securite / Request id, timing and security headers."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        finally:
            request_id_var.reset(token)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if elapsed_ms > settings.SLOW_REQUEST_MS:
            logger.info("Slow request %s %s: %.0f ms [%s]", request.method, request.url.path, elapsed_ms, request_id)
        return response


app.add_middleware(RequestContextMiddleware)

app.include_router(api_router)


@app.get("/")
@app.get("/api/")
async def health():
    return {"app": settings.APP_NAME, "version": settings.APP_VERSION, "status": "running"}
