"""
TestTutor - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Registers all API route handlers
5. Provides health check endpoint

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: scoring, user statistics and dashboard analytics
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from testtutor.config import CORS_ORIGINS, DATABASE_URL
from testtutor.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from testtutor.routes import analytics, attempts, catalog, stats
from testtutor.database import create_tables

# Import all models so they are registered with Base.metadata
import testtutor.models  # noqa: F401

# Initialize structured logging before anything else logs
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite: creating tables directly")
    create_tables()

app = FastAPI(
    title="TestTutor",
    description=(
        "Practice-test platform: take multiple-choice tests, get scored "
        "results, follow personal progress and review catalog analytics."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """
    Tag every request with a UUID.

    The ID is stored in a context variable so every log entry of the
    request carries it, and is returned in the X-Request-ID header.
    """
    req_id = generate_request_id()
    request_id_var.set(req_id)

    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000

    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


app.include_router(catalog.router, tags=["Catalog"])
app.include_router(attempts.router, tags=["Attempts"])
app.include_router(stats.router, tags=["User Stats"])
app.include_router(analytics.router, tags=["Analytics"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for container health checks and monitoring."""
    return {"status": "healthy", "service": "testtutor-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "TestTutor",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "domains": "GET /api/domains",
            "tests": "GET /api/tests",
            "test_detail": "GET /api/tests/{id}",
            "start_attempt": "POST /api/tests/{id}/attempts",
            "save_answers": "PUT /api/attempts/{id}",
            "complete_attempt": "POST /api/attempts/{id}/complete",
            "user_stats": "GET /api/users/{id}/stats",
            "dashboard": "GET /api/analytics",
            "test_analytics": "GET /api/analytics/tests/{id}",
            "user_analytics": "GET /api/analytics/users/{id}"
        }
    }
