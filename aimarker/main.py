"""
AI GCSE Marker API - FastAPI Application
Auth, AI provider proxy with moderation, and football team management
"""

import time
from datetime import datetime, timezone
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from contextlib import asynccontextmanager

from aimarker.config import settings
from aimarker.routes import ai, auth, football, submissions, system
from aimarker.utils.ai_clients import gemini_client, github_client, openrouter_client
from aimarker.utils.database import close_database, init_database
from aimarker.utils.logger import get_request_logger, setup_logging
from aimarker.utils.moderation import llama_guard
from aimarker.utils.rate_limit import RateLimitMiddleware, get_client_ip
from aimarker.utils.retry import retry_async

# Configure logging
setup_logging(settings.logging_config_path, settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

START_TIME = time.monotonic()

HTTP_CLIENTS = (github_client, openrouter_client, gemini_client, llama_guard)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    logger.info(f"{settings.app_name} starting up...")

    await retry_async(init_database, retries=5, base_delay=1.0, max_delay=10.0)

    # Initialize HTTP clients with connection pooling
    for client in HTTP_CLIENTS:
        await client.start()

    if not llama_guard.is_configured():
        logger.warning("Content moderation disabled: Cloudflare credentials not set")

    logger.info(f"{settings.app_name} startup complete on port {settings.port}")

    yield

    # Shutdown
    logger.info(f"{settings.app_name} shutting down...")

    for client in HTTP_CLIENTS:
        await client.stop()

    await close_database()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Backend for the GCSE AI Marker: auth, AI proxy with moderation and football teams",
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Global /api rate limit
app.add_middleware(RateLimitMiddleware, prefix="/api")


@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    """Reject bodies whose declared size exceeds the cap"""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > settings.max_body_bytes:
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={"success": False, "message": "Request body too large"}
        )
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["X-DNS-Prefetch-Control"] = "off"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """HTTP access log"""
    started = time.perf_counter()
    response = await call_next(request)
    get_request_logger().log_request(
        request.method,
        request.url.path,
        response.status_code,
        time.perf_counter() - started,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent")
    )
    return response


# CORS - allow only the frontend domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# Global exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Custom HTTP exception handler"""
    if isinstance(exc.detail, dict):
        content = exc.detail
    elif exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        content = {"success": False, "message": "Endpoint not found"}
    else:
        content = {
            "success": False,
            "message": exc.detail,
            "status_code": exc.status_code
        }
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(location), "message": error.get("msg")})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation failed", "errors": errors}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Server error",
            "error": "An error occurred" if settings.is_production else str(exc)
        }
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Process liveness probe"""
    return {
        "status": "ok",
        "uptime": round(time.monotonic() - START_TIME, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "port": settings.port
    }


# Include routers
app.include_router(system.router, prefix="/api", tags=["System"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(ai.router, prefix="/api", tags=["AI"])
app.include_router(football.router, prefix="/api/football", tags=["Football"])
app.include_router(submissions.router, prefix="/api/aimarker", tags=["Submissions"])


def run():
    """Console entry point"""
    import uvicorn

    uvicorn.run(
        "aimarker.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None
    )


if __name__ == "__main__":
    run()
