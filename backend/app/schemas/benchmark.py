"""
Benchmark API Schemas.

Pydantic models for benchmark calculation, totals reconciliation and code
normalization APIs. Response models are built straight from the engine's
dataclasses (``from_attributes``).
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum

from ml.benchmark.models import (
    AssessmentStatus,
    BenchmarkStatus,
    Confidence,
    DocumentClassification,
    LineStatus,
    LocalityConfidence,
    MatchStatus,
    ReconciliationStatus,
    TotalType,
)

MAX_LINE_ITEMS = 500


class EngineModel(BaseModel):
    """Base for schemas read from engine dataclasses."""
    model_config = ConfigDict(from_attributes=True)


# ============================================
# Enums
# ============================================

class CareSettingEnum(str, Enum):
    OFFICE = "office"
    FACILITY = "facility"


# ============================================
# Request Schemas
# ============================================

class LineItemIn(BaseModel):
    """A billed service to benchmark."""
    code: str = Field(..., min_length=1, max_length=50, description="CPT/HCPCS code as printed on the bill")
    billed_amount: float = Field(..., ge=0, allow_inf_nan=False, description="Amount charged for the line")
    units: int = Field(1, description="Units of service; values below 1 count as 1")
    description: Optional[str] = Field(None, max_length=500)
    service_date: Optional[str] = Field(None, description="Date of service, any common format")
    modifier: Optional[str] = Field(None, max_length=2)
    is_facility: Optional[bool] = Field(None, description="Overrides the request's care setting")


class BenchmarkRequest(BaseModel):
    """Request for a benchmark calculation."""
    line_items: List[LineItemIn] = Field(default_factory=list, max_length=MAX_LINE_ITEMS)
    state: Optional[str] = Field(None, max_length=2, description="Two-letter state code")
    zip_code: Optional[str] = Field(None, max_length=10, description="ZIP or ZIP+4")
    care_setting: CareSettingEnum = Field(CareSettingEnum.OFFICE)


class ReconcileRequest(BaseModel):
    """Request for totals reconciliation."""
    analysis: Dict[str, Any] = Field(..., description="Bill analysis produced by document extraction")
    document_text: Optional[str] = Field(None, description="Raw document text for classification")


class AnalyzeRequest(ReconcileRequest):
    """Benchmark and reconcile a bill analysis in one call."""
    state: Optional[str] = Field(None, max_length=2)
    zip_code: Optional[str] = Field(None, max_length=10)
    care_setting: CareSettingEnum = Field(CareSettingEnum.OFFICE)


# ============================================
# Code Normalization
# ============================================

class NormalizedCodeRead(EngineModel):
    code: str
    modifier: str
    raw_input: str


class NormalizeResponse(BaseModel):
    normalized: NormalizedCodeRead
    is_valid: bool
    formatted: str


# ============================================
# Totals Reconciliation
# ============================================

class TotalCandidateRead(EngineModel):
    type: TotalType
    amount: float
    label: str
    confidence: Confidence
    evidence: str
    source: str


class ComparisonTotalRead(EngineModel):
    value: float
    type: TotalType
    confidence: Confidence
    explanation: str
    limited_comparability: bool


class ExtractedChargeRead(EngineModel):
    description: str
    charge_amount: Optional[float] = None
    code: Optional[str] = None
    units: int = 1


class ReconciliationResponse(EngineModel):
    """Totals reconciliation result."""
    line_items: List[ExtractedChargeRead]
    sum_of_line_charges: float
    comparison_total: Optional[ComparisonTotalRead] = None
    document_classification: DocumentClassification
    reconciliation_status: ReconciliationStatus
    candidates: List[TotalCandidateRead] = []
    note: Optional[str] = None
    difference_percent: Optional[float] = None


# ============================================
# Benchmark Output
# ============================================

class LineResultRead(EngineModel):
    code: str
    modifier: str
    description: Optional[str] = None
    billed_amount: float
    units: int
    reference_per_unit: Optional[float] = None
    reference_total: Optional[float] = None
    multiple: Optional[float] = None
    status: LineStatus
    match_status: MatchStatus
    year_used: Optional[int] = None
    notes: List[str] = []
    is_bundled: bool = False
    modifier_fallback_used: bool = False


class BenchmarkTotalsRead(EngineModel):
    billed_total: float
    reference_total: Optional[float] = None
    multiple: Optional[float] = None
    difference: Optional[float] = None
    unmatched_billed_total: float = 0.0


class BenchmarkMetadataRead(EngineModel):
    locality_confidence: LocalityConfidence
    locality_name: Optional[str] = None
    year_used: int
    requested_years: List[int]
    used_year_fallback: bool
    fallback_reason: Optional[str] = None
    notes: List[str] = []
    state: Optional[str] = None
    zip_code: Optional[str] = None


class FeeQueryRead(EngineModel):
    code: str
    modifier: str
    year: int
    found: bool


class DebugTraceRead(EngineModel):
    raw_codes: List[str]
    normalized_codes: List[NormalizedCodeRead]
    codes_matched: List[str]
    codes_missing: List[str]
    latest_year: int
    queries_attempted: List[FeeQueryRead]


class OverallAssessmentRead(EngineModel):
    status: AssessmentStatus
    message: str


class BenchmarkSummary(BaseModel):
    """Plain-language sentences describing the result."""
    benchmark_statement: str
    comparison_sentence: Optional[str] = None
    confidence_qualifier: str
    year_fallback_disclosure: Optional[str] = None


class BenchmarkResponse(EngineModel):
    """Bill-level benchmark result."""
    status: BenchmarkStatus
    totals: BenchmarkTotalsRead
    metadata: BenchmarkMetadataRead
    line_results: List[LineResultRead]
    debug_trace: DebugTraceRead
    assessment: OverallAssessmentRead
    reconciliation: Optional[ReconciliationResponse] = None
    summary: Optional[BenchmarkSummary] = None
