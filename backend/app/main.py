import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import router as auth_router
from app.api.deps import get_db
from app.api.purchases import router as purchases_router
from app.api.users import router as users_router
from app.core.config import APP_VERSION, settings
from app.core.errors import HTTPError, http_error_handler
from app.core.logging import setup_logging
from app.core.middleware import ErrorResponseMiddleware, RequestValidationMiddleware
from app.db.session import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    setup_logging()
    logger.info(
        "Starting %s %s (login limit %d, cooldown %d minutes)",
        settings.APP_NAME,
        APP_VERSION,
        settings.LOGIN_ATTEMPT_LIMIT,
        settings.LOGIN_COOLDOWN_MINUTES,
    )

    yield

    logger.info("Disposing database engine")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# Register custom exception handler for standardized error responses
app.add_exception_handler(HTTPError, http_error_handler)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    """Bind the request ID to structlog context for the duration of the request."""
    structlog.contextvars.clear_contextvars()
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        return await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request validation middleware (assigns X-Request-ID)
app.add_middleware(RequestValidationMiddleware, enforce_content_type=True)

# Error response middleware (add last to catch all errors)
app.add_middleware(ErrorResponseMiddleware)


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint for container orchestration.

    Returns 200 if the database answers, 503 otherwise.
    """
    checks = {
        "status": "healthy",
        "database": False,
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        checks["status"] = "unhealthy"

    status_code = 200 if checks["database"] else 503
    return JSONResponse(content=checks, status_code=status_code)


# Include routers with /api prefix
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(purchases_router, prefix="/api")
