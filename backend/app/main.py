"""
FastAPI Application Entry Point.

This module initializes the FastAPI application and includes all routers.
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1.router import api_router
from app.core.exceptions import validation_exception_handler
from app.core.metrics import router as metrics_router
from app.core.sentry import init_sentry
from app.middleware.metrics_middleware import MetricsMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

init_sentry()

app = FastAPI(
    title=settings.APP_NAME,
    description="Medicare fee schedule benchmarks and bill totals reconciliation",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)

# CORS middleware configuration - allow localhost ports for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
app.include_router(metrics_router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """
    Health check endpoint.

    Returns:
        dict: Status of the application.
    """
    return {"status": "healthy"}
