"""
Roll per-line benchmark results up into a bill-level output.

Also hosts the plain-language helpers used to present a ``BenchmarkOutput``
(overall assessment, benchmark statement, comparison sentence, locality
qualifier and year fallback disclosure).
"""

import logging
from typing import Optional, Sequence

from ml.benchmark.fee_calculator import round_half_up
from ml.benchmark.line_matcher import FAIR_THRESHOLD, HIGH_THRESHOLD, LineMatch
from ml.benchmark.models import (
    AssessmentStatus,
    BenchmarkMetadata,
    BenchmarkOutput,
    BenchmarkStatus,
    BenchmarkTotals,
    DebugTrace,
    LineResult,
    LineStatus,
    LocalityConfidence,
    LocalityResolution,
    MatchStatus,
    OverallAssessment,
)

logger = logging.getLogger(__name__)

ASSESSMENT_MESSAGES = {
    AssessmentStatus.FAIR: (
        "Your charges are within the typical range for commercial insurance. "
        "Commercial prices are usually 100-200% of Medicare rates."
    ),
    AssessmentStatus.HIGH: (
        "Commercial prices are often higher than Medicare, but some of these "
        "charges may be worth discussing with the billing department."
    ),
    AssessmentStatus.VERY_HIGH: (
        "Commercial prices are often higher than Medicare, but these charges are "
        "significantly above typical rates. This may indicate room for "
        "negotiation or review."
    ),
    AssessmentStatus.MIXED: (
        "Commercial prices are often higher than Medicare, but large differences "
        "may indicate room for negotiation or review."
    ),
    AssessmentStatus.UNKNOWN: "Insufficient data to determine pricing comparison.",
}


def compute_totals(line_results: Sequence[LineResult]) -> BenchmarkTotals:
    """Sum billed and reference amounts over matched lines."""
    matched = [r for r in line_results if r.match_status == MatchStatus.MATCHED]
    billed = sum(r.billed_amount for r in matched)
    unmatched = sum(r.billed_amount for r in line_results if r.match_status != MatchStatus.MATCHED)

    if not matched:
        return BenchmarkTotals(
            billed_total=0.0,
            unmatched_billed_total=round_half_up(unmatched),
        )

    reference = sum(r.reference_total or 0.0 for r in matched)
    multiple = round_half_up(billed / reference) if reference > 0 else None
    return BenchmarkTotals(
        billed_total=round_half_up(billed),
        reference_total=round_half_up(reference),
        multiple=multiple,
        difference=round_half_up(billed - reference),
        unmatched_billed_total=round_half_up(unmatched),
    )


def determine_benchmark_status(matches: Sequence[LineMatch]) -> BenchmarkStatus:
    """
    Bill-level status.

    - no_codes: nothing normalized to a billable code
    - no_matches: valid codes, none matched
    - partial: some matched, some did not
    - ok: everything matched
    """
    if not matches or not any(m.valid_code for m in matches):
        return BenchmarkStatus.NO_CODES

    matched = sum(1 for m in matches if m.result.match_status == MatchStatus.MATCHED)
    if matched == 0:
        return BenchmarkStatus.NO_MATCHES
    if matched < len(matches):
        return BenchmarkStatus.PARTIAL
    return BenchmarkStatus.OK


def build_debug_trace(matches: Sequence[LineMatch], latest_year: int) -> DebugTrace:
    codes_matched = []
    codes_missing = []
    queries = []
    for m in matches:
        if m.result.match_status == MatchStatus.MATCHED:
            codes_matched.append(m.result.code)
        else:
            codes_missing.append(m.normalized.code if m.valid_code else m.raw_code)
        queries.extend(m.queries)

    return DebugTrace(
        raw_codes=tuple(m.raw_code for m in matches),
        normalized_codes=tuple(m.normalized for m in matches),
        codes_matched=tuple(codes_matched),
        codes_missing=tuple(codes_missing),
        latest_year=latest_year,
        queries_attempted=tuple(queries),
    )


def build_metadata(
    matches: Sequence[LineMatch],
    locality: LocalityResolution,
    latest_year: int,
    session_notes: Sequence[str] = (),
    state: Optional[str] = None,
    zip_code: Optional[str] = None,
) -> BenchmarkMetadata:
    requested_years: list[int] = []
    fallback_reason = None
    for m in matches:
        if m.requested_year is not None and m.requested_year not in requested_years:
            requested_years.append(m.requested_year)
        if m.used_year_fallback and fallback_reason is None:
            fallback_reason = m.fallback_reason

    used_fallback = fallback_reason is not None
    year_used = latest_year if used_fallback else (requested_years[0] if requested_years else latest_year)

    notes = list(session_notes) + list(locality.notes)
    if fallback_reason:
        notes.append(fallback_reason)

    return BenchmarkMetadata(
        locality_confidence=locality.confidence,
        locality_name=locality.locality_name,
        year_used=year_used,
        requested_years=tuple(requested_years),
        used_year_fallback=used_fallback,
        fallback_reason=fallback_reason,
        notes=tuple(notes),
        state=state.upper() if state else None,
        zip_code=zip_code,
    )


def overall_assessment(
    totals: BenchmarkTotals,
    line_results: Sequence[LineResult],
) -> OverallAssessment:
    """
    Overall verdict for the bill.

    ``mixed`` when a multi-line bill holds both fair and high/very-high
    lines, otherwise the tier of the overall multiple.
    """
    if totals.multiple is None:
        return OverallAssessment(AssessmentStatus.UNKNOWN, ASSESSMENT_MESSAGES[AssessmentStatus.UNKNOWN])

    statuses = {r.status for r in line_results}
    has_high = LineStatus.HIGH in statuses or LineStatus.VERY_HIGH in statuses
    if has_high and LineStatus.FAIR in statuses and len(line_results) > 1:
        return OverallAssessment(AssessmentStatus.MIXED, ASSESSMENT_MESSAGES[AssessmentStatus.MIXED])

    percent = round_half_up(totals.multiple * 100, 0)
    if percent <= FAIR_THRESHOLD:
        status = AssessmentStatus.FAIR
    elif percent <= HIGH_THRESHOLD:
        status = AssessmentStatus.HIGH
    else:
        status = AssessmentStatus.VERY_HIGH
    return OverallAssessment(status, ASSESSMENT_MESSAGES[status])


def aggregate(
    matches: Sequence[LineMatch],
    locality: LocalityResolution,
    latest_year: int,
    session_notes: Sequence[str] = (),
    state: Optional[str] = None,
    zip_code: Optional[str] = None,
) -> BenchmarkOutput:
    """
    Assemble the bill-level ``BenchmarkOutput`` from per-line matches.

    Args:
        matches: Line matches in input order.
        locality: The locality resolved for the calculation.
        latest_year: Latest fee schedule year seen by the session.
        session_notes: Notes raised while setting up the session.
        state: Geographic hint echoed into metadata.
        zip_code: Geographic hint echoed into metadata.

    Returns:
        BenchmarkOutput: Without a reconciliation attached.
    """
    line_results = tuple(m.result for m in matches)
    totals = compute_totals(line_results)
    status = determine_benchmark_status(matches)

    logger.info(
        f"Benchmark aggregated: status={status.value}, lines={len(line_results)}, "
        f"multiple={totals.multiple}"
    )

    return BenchmarkOutput(
        status=status,
        totals=totals,
        metadata=build_metadata(matches, locality, latest_year, session_notes, state, zip_code),
        line_results=line_results,
        debug_trace=build_debug_trace(matches, latest_year),
        assessment=overall_assessment(totals, line_results),
    )


# =============================================================================
# Presentation helpers
# =============================================================================

def _dollars(amount: float) -> str:
    return f"${round_half_up(amount, 0):,.0f}"


def benchmark_statement(output: BenchmarkOutput) -> str:
    if output.totals.reference_total is None:
        return "Medicare reference pricing data is not available for the services on this bill."

    year_note = ""
    if output.metadata.used_year_fallback:
        year_note = f" (using {output.metadata.year_used} rates, the latest available)"
    return (
        "Medicare's reference price for these services is approximately "
        f"{_dollars(output.totals.reference_total)}{year_note}."
    )


def comparison_sentence(output: BenchmarkOutput) -> Optional[str]:
    multiple = output.totals.multiple
    if multiple is None:
        return None
    bill = _dollars(output.totals.billed_total)
    if multiple >= 1:
        return f"Your bill of {bill} is about {multiple:g}× higher than this reference price."
    lower = round_half_up((1 - multiple) * 100, 0)
    return (
        f"Your bill of {bill} is about {multiple:g}× of this reference price "
        f"(about {lower:.0f}% lower)."
    )


def confidence_qualifier(output: BenchmarkOutput) -> str:
    metadata = output.metadata
    if metadata.locality_confidence == LocalityConfidence.LOCAL_ADJUSTED and metadata.locality_name:
        return f"Adjusted for your region ({metadata.locality_name})"
    return "National estimate (exact locality unknown)"


def year_fallback_disclosure(output: BenchmarkOutput) -> Optional[str]:
    """Disclosure shown when a newer year's rates stood in for the service year."""
    metadata = output.metadata
    if not metadata.used_year_fallback:
        return None

    requested = next((y for y in metadata.requested_years if y != metadata.year_used), None)
    if requested is None:
        return None
    return (
        f"Using {metadata.year_used} Medicare reference pricing (latest available) "
        f"to provide a comparison. This is not the historical {requested} Medicare rate."
    )
