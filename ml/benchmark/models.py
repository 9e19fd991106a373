"""
Data model for the benchmark engine.

Every entity is created fresh for a single calculation and is immutable
once produced. Enums subclass ``str`` so results serialize as plain values.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Union


class LineStatus(str, Enum):
    """Fairness tier of a single billed line."""

    FAIR = "fair"
    HIGH = "high"
    VERY_HIGH = "very_high"
    UNKNOWN = "unknown"


class MatchStatus(str, Enum):
    """Whether a line found a fee schedule reference."""

    MATCHED = "matched"
    MISSING = "missing"


class BenchmarkStatus(str, Enum):
    """Bill-level outcome of a benchmark calculation."""

    OK = "ok"
    NO_CODES = "no_codes"
    NO_MATCHES = "no_matches"
    PARTIAL = "partial"


class LocalityConfidence(str, Enum):
    """How the geographic adjustment was obtained."""

    LOCAL_ADJUSTED = "local_adjusted"
    NATIONAL_ESTIMATE = "national_estimate"


class LocalityMethod(str, Enum):
    """Which rung of the locality fallback ladder matched."""

    ZIP_EXACT = "zip_exact"
    ZIP_CROSSWALK = "zip_crosswalk"
    STATE = "state"
    NATIONAL_DEFAULT = "national_default"


class AssessmentStatus(str, Enum):
    """Overall verdict for a bill."""

    FAIR = "fair"
    HIGH = "high"
    VERY_HIGH = "very_high"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class TotalType(str, Enum):
    """Kinds of "total" a bill can show."""

    CHARGES = "charges"
    ALLOWED = "allowed"
    PATIENT_RESPONSIBILITY = "patient_responsibility"
    INSURANCE_PAID = "insurance_paid"


class Confidence(str, Enum):
    """Confidence attached to an extracted total."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DocumentClassification(str, Enum):
    """Document types recognized by the classifier."""

    ITEMIZED_STATEMENT = "itemized_statement"
    EOB = "eob"
    PORTAL_SUMMARY = "portal_summary"
    PAYMENT_RECEIPT = "payment_receipt"
    UNKNOWN = "unknown"


class ReconciliationStatus(str, Enum):
    """Outcome of checking the comparison total against line items."""

    MATCHED = "matched"
    MISMATCH = "mismatch"
    INSUFFICIENT_DATA = "insufficient_data"


# =============================================================================
# Benchmark inputs
# =============================================================================

@dataclass(frozen=True)
class NormalizedCode:
    """A billing code parsed out of a messy raw string."""

    code: str
    modifier: str
    raw_input: str


@dataclass(frozen=True)
class LocalityAdjustment:
    """GPCI factors for one Medicare payment locality."""

    locality_id: str
    state_code: str
    locality_name: Optional[str]
    zip_code: Optional[str] = None
    work_factor: float = 1.0
    practice_expense_factor: float = 1.0
    malpractice_factor: float = 1.0

    @classmethod
    def national(cls) -> "LocalityAdjustment":
        """Factors used when no locality could be resolved."""
        return cls(locality_id="", state_code="", locality_name=None)


@dataclass(frozen=True)
class LocalityResolution:
    """Result of the locality fallback ladder."""

    adjustment: Optional[LocalityAdjustment]
    confidence: LocalityConfidence
    method: LocalityMethod
    locality_name: Optional[str] = None
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class FeeScheduleRow:
    """One MPFS row for a code/modifier/year."""

    code: str
    modifier: str
    year: int
    description: Optional[str] = None
    work_rvu: Optional[float] = None
    nonfacility_pe_rvu: Optional[float] = None
    facility_pe_rvu: Optional[float] = None
    malpractice_rvu: Optional[float] = None
    conversion_factor: Optional[float] = None
    nonfacility_fee: Optional[float] = None
    facility_fee: Optional[float] = None
    global_days: Optional[str] = None
    status_flag: str = "nonQP"


@dataclass(frozen=True)
class LineItem:
    """A billed service as handed to the engine."""

    code: str
    billed_amount: float
    raw_code: Optional[str] = None
    description: Optional[str] = None
    units: int = 1
    service_date: Optional[Union[str, date]] = None
    modifier: Optional[str] = None
    is_facility: bool = False

    def __post_init__(self):
        if not math.isfinite(self.billed_amount) or self.billed_amount < 0:
            raise ValueError(f"billed_amount must be a finite amount >= 0, got {self.billed_amount}")
        if self.units < 1:
            # Units below one are treated as a single unit
            object.__setattr__(self, "units", 1)


# =============================================================================
# Benchmark outputs
# =============================================================================

@dataclass(frozen=True)
class LineResult:
    """Benchmark outcome for one line item."""

    code: str
    modifier: str
    description: Optional[str]
    billed_amount: float
    units: int
    reference_per_unit: Optional[float]
    reference_total: Optional[float]
    multiple: Optional[float]
    status: LineStatus
    match_status: MatchStatus
    year_used: Optional[int]
    notes: tuple[str, ...] = ()
    is_bundled: bool = False
    modifier_fallback_used: bool = False


@dataclass(frozen=True)
class FeeQuery:
    """A single fee schedule lookup, kept for the debug trace."""

    code: str
    modifier: str
    year: int
    found: bool


@dataclass(frozen=True)
class DebugTrace:
    """Everything needed to replay how a benchmark was produced."""

    raw_codes: tuple[str, ...]
    normalized_codes: tuple[NormalizedCode, ...]
    codes_matched: tuple[str, ...]
    codes_missing: tuple[str, ...]
    latest_year: int
    queries_attempted: tuple[FeeQuery, ...]


@dataclass(frozen=True)
class BenchmarkTotals:
    billed_total: float
    reference_total: Optional[float] = None
    multiple: Optional[float] = None
    difference: Optional[float] = None
    unmatched_billed_total: float = 0.0


@dataclass(frozen=True)
class BenchmarkMetadata:
    locality_confidence: LocalityConfidence
    locality_name: Optional[str]
    year_used: int
    requested_years: tuple[int, ...]
    used_year_fallback: bool
    fallback_reason: Optional[str] = None
    notes: tuple[str, ...] = ()
    state: Optional[str] = None
    zip_code: Optional[str] = None


@dataclass(frozen=True)
class OverallAssessment:
    status: AssessmentStatus
    message: str


# =============================================================================
# Totals reconciliation
# =============================================================================

@dataclass(frozen=True)
class TotalCandidate:
    """A "total amount" signal pulled from one place on the bill."""

    type: TotalType
    amount: float
    label: str
    confidence: Confidence
    evidence: str
    source: str = ""


@dataclass(frozen=True)
class ComparisonTotal:
    value: float
    type: TotalType
    confidence: Confidence
    explanation: str
    limited_comparability: bool = False


@dataclass(frozen=True)
class ExtractedCharge:
    """A charge row read from the bill analysis."""

    description: str
    charge_amount: Optional[float] = None
    code: Optional[str] = None
    units: int = 1


@dataclass(frozen=True)
class ReconciliationResult:
    line_items: tuple[ExtractedCharge, ...]
    sum_of_line_charges: float
    comparison_total: Optional[ComparisonTotal]
    document_classification: DocumentClassification
    reconciliation_status: ReconciliationStatus
    candidates: tuple[TotalCandidate, ...] = ()
    note: Optional[str] = None
    difference_percent: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BenchmarkOutput:
    """Bill-level benchmark result with its full audit trail."""

    status: BenchmarkStatus
    totals: BenchmarkTotals
    metadata: BenchmarkMetadata
    line_results: tuple[LineResult, ...]
    debug_trace: DebugTrace
    assessment: OverallAssessment
    reconciliation: Optional[ReconciliationResult] = field(default=None)

    def to_dict(self) -> dict:
        return asdict(self)
