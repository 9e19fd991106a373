"""
Benchmark Service.

Connects the HTTP layer to the benchmark engine:
1. Builds database-backed stores from the request's session
2. Runs the engine with the configured limits
3. Converts engine dataclasses to response schemas
4. Records Prometheus metrics and Sentry context
"""

import logging
import time
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import BadRequestException, BenchmarkFailedException
from app.core.metrics import track_benchmark, track_reconciliation
from app.core.sentry import add_breadcrumb, capture_exception
from app.schemas.benchmark import (
    BenchmarkRequest,
    BenchmarkResponse,
    BenchmarkSummary,
    CareSettingEnum,
    NormalizeResponse,
    NormalizedCodeRead,
    ReconciliationResponse,
)
from app.services.benchmark_store import build_stores
from ml.benchmark.aggregator import (
    benchmark_statement,
    comparison_sentence,
    confidence_qualifier,
    year_fallback_disclosure,
)
from ml.benchmark.benchmark_engine import calculate_benchmarks
from ml.benchmark.bill_analysis import line_items_from_analysis
from ml.benchmark.code_normalizer import format_code, is_valid_billable_code, normalize_code
from ml.benchmark.models import BenchmarkOutput, LineItem, ReconciliationResult
from ml.benchmark.totals import reconcile_totals

logger = logging.getLogger(__name__)


class BenchmarkService:
    """
    Runs benchmark calculations and totals reconciliation for the API.

    Engine settings come from ``app.config.settings`` unless overridden.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        default_year: Optional[int] = None,
        status_flag: Optional[str] = None,
        tolerance: Optional[float] = None,
    ):
        self.max_workers = max_workers or settings.BENCHMARK_MAX_WORKERS
        self.default_year = default_year or settings.DEFAULT_FEE_SCHEDULE_YEAR
        self.status_flag = status_flag or settings.FEE_SCHEDULE_STATUS_FLAG
        self.tolerance = tolerance if tolerance is not None else settings.RECONCILIATION_TOLERANCE

    # ============================================
    # Benchmarks
    # ============================================

    def calculate(self, request: BenchmarkRequest, db: Session) -> BenchmarkResponse:
        """Benchmark the line items of a request."""
        default_facility = request.care_setting == CareSettingEnum.FACILITY
        line_items = [
            LineItem(
                code=item.code,
                raw_code=item.code,
                billed_amount=item.billed_amount,
                description=item.description,
                units=item.units,
                service_date=item.service_date,
                modifier=item.modifier,
                is_facility=item.is_facility if item.is_facility is not None else default_facility,
            )
            for item in request.line_items
        ]
        output = self._run(line_items, db, request.state, request.zip_code)
        return self.to_response(output)

    def analyze(
        self,
        analysis: Mapping[str, Any],
        db: Session,
        document_text: Optional[str] = None,
        state: Optional[str] = None,
        zip_code: Optional[str] = None,
        care_setting: CareSettingEnum = CareSettingEnum.OFFICE,
    ) -> BenchmarkResponse:
        """
        Benchmark line items derived from a bill analysis and attach the
        totals reconciliation as a cross-check.
        """
        line_items = line_items_from_analysis(
            analysis, is_facility=care_setting == CareSettingEnum.FACILITY
        )
        reconciliation = self._reconcile(analysis, document_text)
        output = self._run(line_items, db, state, zip_code, reconciliation=reconciliation)
        return self.to_response(output)

    def _run(
        self,
        line_items: list[LineItem],
        db: Session,
        state: Optional[str],
        zip_code: Optional[str],
        reconciliation: Optional[ReconciliationResult] = None,
    ) -> BenchmarkOutput:
        fee_store, locality_store = build_stores(db)
        add_breadcrumb(
            "Benchmark calculation started",
            data={"line_items": len(line_items), "state": state},
        )

        start = time.perf_counter()
        try:
            output = calculate_benchmarks(
                line_items,
                fee_store,
                locality_store,
                state=state,
                zip_code=zip_code,
                max_workers=self.max_workers,
                default_year=self.default_year,
                status_flag=self.status_flag,
                reconciliation=reconciliation,
            )
        except Exception as e:
            capture_exception(e, context={"benchmark": {"line_items": len(line_items)}})
            raise BenchmarkFailedException() from e

        track_benchmark(output, time.perf_counter() - start)
        return output

    @staticmethod
    def to_response(output: BenchmarkOutput) -> BenchmarkResponse:
        response = BenchmarkResponse.model_validate(output)
        response.summary = BenchmarkSummary(
            benchmark_statement=benchmark_statement(output),
            comparison_sentence=comparison_sentence(output),
            confidence_qualifier=confidence_qualifier(output),
            year_fallback_disclosure=year_fallback_disclosure(output),
        )
        return response

    # ============================================
    # Totals reconciliation
    # ============================================

    def _reconcile(
        self,
        analysis: Mapping[str, Any],
        document_text: Optional[str] = None,
    ) -> ReconciliationResult:
        result = reconcile_totals(analysis, document_text=document_text, tolerance=self.tolerance)
        track_reconciliation(result)
        return result

    def reconcile(
        self,
        analysis: Mapping[str, Any],
        document_text: Optional[str] = None,
    ) -> ReconciliationResponse:
        """Reconcile the totals of a bill analysis."""
        return ReconciliationResponse.model_validate(self._reconcile(analysis, document_text))

    # ============================================
    # Code normalization
    # ============================================

    def normalize(self, code: str) -> NormalizeResponse:
        """Normalize one raw code string."""
        if not code or not code.strip():
            raise BadRequestException("Code must not be blank")

        normalized = normalize_code(code)
        return NormalizeResponse(
            normalized=NormalizedCodeRead.model_validate(normalized),
            is_valid=is_valid_billable_code(normalized),
            formatted=format_code(normalized),
        )


benchmark_service = BenchmarkService()
