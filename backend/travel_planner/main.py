from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import asyncio
import time
import uuid
import logging
from contextlib import asynccontextmanager, suppress

from travel_planner.core.config import settings
from travel_planner.core.database import SessionLocal, init_db
from travel_planner.core.errors import TravelPlannerError
from travel_planner.api import (
    auth,
    destination_photos,
    destinations,
    health,
    lookups,
    photos,
    proposals,
    treasure_hunts,
    trips,
    users,
)
from travel_planner.auth.jwt_manager import jwt_manager
from travel_planner.tasks.purge import run_purge_loop

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Travel Planner API")

    init_db()

    # Cleanup expired tokens on startup
    db = SessionLocal()
    try:
        removed = jwt_manager.cleanup_expired_tokens(db)
        logger.info(f"Removed {removed} expired refresh tokens")
    finally:
        db.close()

    purge_task = None
    if settings.purge_enabled:
        purge_task = asyncio.create_task(run_purge_loop())
        logger.info(f"Purge sweep scheduled every {settings.purge_interval_hours}h")

    yield

    # Shutdown
    if purge_task is not None:
        purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await purge_task
    logger.info("Shutting down Travel Planner API")


# Create FastAPI app
app = FastAPI(
    title="Travel Planner API",
    description="Destinations, trips, photos and treasure hunts for travellers",
    version="1.0.0",
    lifespan=lifespan
)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Content-Security-Policy"] = "default-src 'self'"

    return response


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing."""
    start_time = time.time()
    request_id = getattr(request.state, "request_id", "unknown")

    logger.info(f"Request started: {request.method} {request.url.path} [{request_id}]")

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"{response.status_code} in {duration_ms:.2f}ms [{request_id}]"
    )

    return response


# Request ID middleware, registered last so it runs first
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID for tracing."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Trusted host middleware (optional, for production)
if settings.environment == "production":
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["*"]  # Configure with actual hosts in production
    )


def error_response(request: Request, status_code: int, error, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "status_code": status_code,
            "request_id": getattr(request.state, "request_id", "unknown")
        },
        headers=headers,
    )


# Exception handlers
@app.exception_handler(TravelPlannerError)
async def travel_planner_exception_handler(request: Request, exc: TravelPlannerError):
    """Map domain errors onto their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"Request failed: {exc.detail}")
    return error_response(request, exc.status_code, exc.detail)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent format."""
    return error_response(request, exc.status_code, exc.detail, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are a plain 400."""
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
        for error in exc.errors()
    ]
    return error_response(request, 400, errors)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "request_id": getattr(request.state, "request_id", "unknown"),
            "exception_type": type(exc).__name__
        },
        exc_info=True
    )

    return error_response(request, 500, "Internal server error")


# Include routers. Fixed /destinations/... paths go before /destinations/{destination_id}
app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(lookups.router)
app.include_router(proposals.router)
app.include_router(destinations.router)
app.include_router(destination_photos.router)
app.include_router(photos.router)
app.include_router(trips.router)
app.include_router(treasure_hunts.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Travel Planner API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "travel_planner.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True if settings.environment == "development" else False,
        log_level="info"
    )
