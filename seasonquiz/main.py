"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError

from seasonquiz.config import settings
from seasonquiz.core.errors import EngineError
from seasonquiz.schemas.common import ErrorResponse
from seasonquiz.api import (
    health_router,
    users_router,
    seasons_router,
    attempts_router,
    progress_router,
    admin_router,
)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Season quiz engine starting…")
    yield
    logger.info("✅ Season quiz engine shut down")


app = FastAPI(
    title="Season Quiz API",
    description="Seasonal trivia competitions with qualification rounds",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Error envelope ────────────────────────────────────────────────────────────


def _error(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error_code=code, message=message, details=details)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    return _error(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Storage text stays in the log
    logger.warning("Integrity violation on %s %s: %s", request.method, request.url.path, exc.orig)
    return _error(409, "integrity_conflict", "The request conflicts with existing data")


@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
async def storage_error_handler(request: Request, exc: Exception):
    logger.exception("Storage unavailable on %s %s", request.method, request.url.path)
    return _error(503, "storage_unavailable", "Storage is temporarily unavailable")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error(
        422,
        "validation_error",
        "Request validation failed",
        {"errors": jsonable_encoder(exc.errors())},
    )


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(seasons_router, prefix="/api/seasons", tags=["Seasons"])
app.include_router(attempts_router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(progress_router, prefix="/api/progress", tags=["Progress"])
app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])


@app.get("/")
async def root():
    return {
        "name": "Season Quiz API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
