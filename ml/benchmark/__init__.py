"""
Benchmark module for medical bill analysis.

Compares billed charges with the Medicare Physician Fee Schedule (MPFS),
adjusted by GPCI locality factors, and reconciles the competing "total"
figures found on a bill:
- Benchmarks: code normalization, locality/year resolution, fee calculation
- Totals: candidate extraction, comparison total selection, reconciliation
"""

from ml.benchmark.benchmark_engine import calculate_benchmarks
from ml.benchmark.code_normalizer import (
    normalize_code,
    is_valid_billable_code,
    format_code,
)
from ml.benchmark.fee_calculator import calculate_reference_fee, DEFAULT_CONVERSION_FACTOR
from ml.benchmark.aggregator import (
    benchmark_statement,
    comparison_sentence,
    confidence_qualifier,
    year_fallback_disclosure,
)
from ml.benchmark.bill_analysis import parse_currency, line_items_from_analysis
from ml.benchmark.document_classifier import classify_document
from ml.benchmark.totals import reconcile_totals
from ml.benchmark.session import BenchmarkSession
from ml.benchmark.stores import InMemoryFeeScheduleStore, InMemoryLocalityStore
from ml.benchmark.models import (
    BenchmarkOutput,
    FeeScheduleRow,
    LineItem,
    LocalityAdjustment,
    ReconciliationResult,
)

__all__ = [
    # Benchmarks
    "calculate_benchmarks",
    "calculate_reference_fee",
    "DEFAULT_CONVERSION_FACTOR",
    "BenchmarkSession",
    # Codes
    "normalize_code",
    "is_valid_billable_code",
    "format_code",
    # Presentation
    "benchmark_statement",
    "comparison_sentence",
    "confidence_qualifier",
    "year_fallback_disclosure",
    # Totals
    "reconcile_totals",
    "classify_document",
    "parse_currency",
    "line_items_from_analysis",
    # Stores and models
    "InMemoryFeeScheduleStore",
    "InMemoryLocalityStore",
    "BenchmarkOutput",
    "FeeScheduleRow",
    "LineItem",
    "LocalityAdjustment",
    "ReconciliationResult",
]
