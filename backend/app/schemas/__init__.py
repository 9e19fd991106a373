"""
Pydantic schemas for request/response validation.
"""

from app.schemas.benchmark import (
    BenchmarkRequest,
    BenchmarkResponse,
    ReconcileRequest,
    ReconciliationResponse,
    AnalyzeRequest,
    NormalizeResponse,
)

__all__ = [
    "BenchmarkRequest",
    "BenchmarkResponse",
    "ReconcileRequest",
    "ReconciliationResponse",
    "AnalyzeRequest",
    "NormalizeResponse",
]
