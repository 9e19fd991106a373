"""
Benchmark API Endpoints.

- Medicare fee schedule benchmarks for billed line items
- Totals reconciliation for a bill analysis
- Combined analysis (benchmarks + reconciliation)
- Code normalization
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.benchmark_service import benchmark_service
from app.schemas.benchmark import (
    AnalyzeRequest,
    BenchmarkRequest,
    BenchmarkResponse,
    NormalizeResponse,
    ReconcileRequest,
    ReconciliationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/calculate", response_model=BenchmarkResponse)
def calculate_benchmark(
    request: BenchmarkRequest,
    db: Session = Depends(get_db),
):
    """
    Compare billed line items with Medicare reference prices.

    An empty ``line_items`` list returns ``status = no_codes``; unknown or
    malformed codes degrade their own line to ``missing``.
    """
    logger.info(f"Benchmark requested for {len(request.line_items)} line items")
    return benchmark_service.calculate(request, db)


@router.post("/reconcile", response_model=ReconciliationResponse)
def reconcile_bill_totals(request: ReconcileRequest):
    """
    Select the comparison total for a bill and check it against its line items.
    """
    return benchmark_service.reconcile(request.analysis, request.document_text)


@router.post("/analyze", response_model=BenchmarkResponse)
def analyze_bill(
    request: AnalyzeRequest,
    db: Session = Depends(get_db),
):
    """
    Benchmark the charges found in a bill analysis.

    The totals reconciliation is attached to the result as a cross-check.
    """
    return benchmark_service.analyze(
        request.analysis,
        db,
        document_text=request.document_text,
        state=request.state,
        zip_code=request.zip_code,
        care_setting=request.care_setting,
    )


@router.get("/normalize", response_model=NormalizeResponse)
def normalize(
    code: str = Query(..., max_length=50, description="Raw CPT/HCPCS code string"),
):
    """Normalize a raw code string into code and modifier."""
    return benchmark_service.normalize(code)
