"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes (visit recording, live counter, analytics)
- Middleware (logging, CORS, rate limiting)
- Startup/shutdown of the shared services

Run with:
    uvicorn nebula.main:app
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from nebula.api import endpoints
from nebula.core.rate_limit import limiter
from nebula.core.service_manager import initialize_services, shutdown_services
from nebula.core.setting import settings
from nebula.middleware.logging import add_logging_middleware, configure_logging

configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="Nebula Visitor Analytics",
    description="Visitor counter and analytics backend for a portfolio site",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

# The portfolio front end is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint for health checks."""
    return {
        "message": "Nebula Visitor Analytics",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["Visitor Analytics"])


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    await initialize_services()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    await shutdown_services()
