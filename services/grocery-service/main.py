"""Main application entry point."""
import logging
from contextlib import asynccontextmanager

import redis
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import (
    API_VERSION,
    OTEL_ENABLED,
    RATE_LIMIT_ENABLED,
    RATE_LIMIT_PER_MINUTE_IP,
    RATE_LIMIT_PER_MINUTE_USER,
    REDIS_URL,
)
from database import engine, init_db
from exceptions import GroceryError
from logging_config import setup_logging
from monitoring import init_profiling
from redis_rate_limiter import RedisRateLimiter
from routers import auth as auth_router
from routers import orders, products, reviews, users

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)

# Sync client for the rate limiter middleware; connects lazily
redis_client = redis.from_url(REDIS_URL, decode_responses=True) if RATE_LIMIT_ENABLED else None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")

    init_db()

    if redis_client is not None:
        if OTEL_ENABLED:
            RedisInstrumentor().instrument(redis_client=redis_client)
        app.state.redis_client = redis_client
        logger.info("Redis client initialized")

    init_profiling()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    if redis_client is not None:
        redis_client.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Grocery Store Service",
    version=API_VERSION,
    lifespan=lifespan
)

if redis_client is not None:
    app.add_middleware(
        RedisRateLimiter,
        redis_client=redis_client,
        requests_per_minute_ip=RATE_LIMIT_PER_MINUTE_IP,
        requests_per_minute_user=RATE_LIMIT_PER_MINUTE_USER
    )

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument FastAPI and SQLAlchemy
if OTEL_ENABLED:
    FastAPIInstrumentor.instrument_app(app)
    SQLAlchemyInstrumentor().instrument(engine=engine)


def _envelope(status_code: int, message: str, data=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": data},
        headers=headers
    )


@app.exception_handler(GroceryError)
async def grocery_error_handler(request: Request, exc: GroceryError):
    """Translate service errors into the response envelope."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("Request failed", extra={
        "path": request.url.path,
        "method": request.method,
        "status_code": exc.status_code,
        "error_type": type(exc).__name__,
        "error_message": exc.message
    })
    return _envelope(exc.status_code, exc.message, exc.data)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed input as a 400 with a field to message map."""
    errors = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field = ".".join(location) or "request"
        errors.setdefault(field, error.get("msg", "Invalid value"))

    logger.warning("Validation failed", extra={
        "path": request.url.path,
        "method": request.method,
        "fields": list(errors)
    })
    return _envelope(400, "Validation failed", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", exc_info=exc, extra={
        "path": request.url.path,
        "method": request.method
    })
    return _envelope(500, "An unexpected error occurred")


# Health check endpoint
@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(auth_router.router)
app.include_router(products.router)
app.include_router(reviews.router)
app.include_router(orders.router)
app.include_router(users.router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
