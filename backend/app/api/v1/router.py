"""
API v1 router aggregating all endpoint routers.

Combines all v1 endpoint routers into a single router.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import benchmark

api_router = APIRouter()

api_router.include_router(
    benchmark.router,
    prefix="/benchmark",
    tags=["Benchmarks"],
)
