"""
Line matching and fairness classification.

Each billed line is normalized, looked up in the fee schedule (exact
modifier first, then the base code; requested year first, then the latest
year), priced by the fee calculator and classified against the reference.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ml.benchmark.code_normalizer import is_valid_billable_code, normalize_code
from ml.benchmark.fee_calculator import calculate_reference_fee, round_half_up
from ml.benchmark.models import (
    FeeQuery,
    FeeScheduleRow,
    LineItem,
    LineResult,
    LineStatus,
    LocalityAdjustment,
    MatchStatus,
    NormalizedCode,
)
from ml.benchmark.session import BenchmarkSession, YearResolver

logger = logging.getLogger(__name__)

# Percent-of-reference thresholds (inclusive upper bounds)
FAIR_THRESHOLD = 200
HIGH_THRESHOLD = 300

# Global surgery periods whose price includes follow-up care
BUNDLED_GLOBAL_DAYS = frozenset({"010", "090"})

STATUS_NOTES = {
    LineStatus.FAIR: "Within typical commercial insurance range",
    LineStatus.HIGH: "Higher than typical, may be negotiable",
    LineStatus.VERY_HIGH: "Significantly above standard rates - review recommended",
}

BUNDLED_NOTE = "This is a bundled/global surgery code - follow-up visits may be included"
MODIFIER_FALLBACK_NOTE = "Base code rate used (modifier-specific rate not found)"


@dataclass(frozen=True)
class RowMatch:
    """A fee schedule row plus whether the base code stood in for the modifier."""

    row: FeeScheduleRow
    modifier_fallback: bool


@dataclass(frozen=True)
class LineMatch:
    """Everything the aggregator needs from one processed line."""

    result: LineResult
    raw_code: str
    normalized: NormalizedCode
    valid_code: bool
    requested_year: Optional[int] = None
    used_year_fallback: bool = False
    fallback_reason: Optional[str] = None
    queries: tuple[FeeQuery, ...] = ()


def determine_status(percent_of_reference: int) -> LineStatus:
    """Map percent-of-reference to a fairness tier."""
    if percent_of_reference <= FAIR_THRESHOLD:
        return LineStatus.FAIR
    if percent_of_reference <= HIGH_THRESHOLD:
        return LineStatus.HIGH
    return LineStatus.VERY_HIGH


def check_bundling(row: FeeScheduleRow) -> bool:
    """True when the row's global days indicate a global surgery package."""
    return (row.global_days or "").strip() in BUNDLED_GLOBAL_DAYS


def find_row_with_modifier(
    session: BenchmarkSession,
    code: str,
    modifier: str,
    year: int,
    queries: list[FeeQuery],
) -> Optional[RowMatch]:
    """
    Look up a code for one year, exact modifier first then base code.

    Every query issued is appended to ``queries``.
    """
    if modifier:
        row = session.fee_store.find_row(code, modifier, year, session.status_flag)
        queries.append(FeeQuery(code=code, modifier=modifier, year=year, found=row is not None))
        if row is not None:
            return RowMatch(row=row, modifier_fallback=False)

    row = session.fee_store.find_row(code, "", year, session.status_flag)
    queries.append(FeeQuery(code=code, modifier="", year=year, found=row is not None))
    if row is not None:
        return RowMatch(row=row, modifier_fallback=bool(modifier))
    return None


def _missing(
    item: LineItem,
    code: str,
    modifier: str,
    note: str,
    year_used: Optional[int] = None,
    description: Optional[str] = None,
) -> LineResult:
    return LineResult(
        code=code,
        modifier=modifier,
        description=description or item.description,
        billed_amount=item.billed_amount,
        units=item.units,
        reference_per_unit=None,
        reference_total=None,
        multiple=None,
        status=LineStatus.UNKNOWN,
        match_status=MatchStatus.MISSING,
        year_used=year_used,
        notes=(note,),
    )


def match_line_item(
    item: LineItem,
    session: BenchmarkSession,
    adjustment: Optional[LocalityAdjustment] = None,
) -> LineMatch:
    """
    Benchmark a single line item.

    Never raises for bad data or a failing store; the line degrades to
    ``missing``/``unknown`` with a note instead.

    Args:
        item: The billed line.
        session: Context of the calculation this line belongs to.
        adjustment: Locality factors, None for national pricing.

    Returns:
        LineMatch: The line result plus its lookup trail.
    """
    raw_code = item.raw_code or item.code
    normalized = normalize_code(raw_code)

    if not is_valid_billable_code(normalized):
        logger.debug(f"Invalid code format: {raw_code!r}")
        result = _missing(
            item,
            code=normalized.code or raw_code,
            modifier=normalized.modifier,
            note=f'Invalid or unrecognized code format: "{raw_code}"',
        )
        return LineMatch(result=result, raw_code=raw_code, normalized=normalized, valid_code=False)

    code = normalized.code
    modifier = normalized.modifier or (item.modifier or "").strip().upper()
    queries: list[FeeQuery] = []
    requested_year: Optional[int] = None

    try:
        requested_year = session.requested_year(item.service_date)
        resolution = YearResolver(session).resolve(
            requested_year,
            lambda year: find_row_with_modifier(session, code, modifier, year, queries),
        )
    except Exception as e:
        logger.warning(f"Fee schedule lookup failed for {code}: {e}")
        result = _missing(
            item, code, modifier,
            note="Fee schedule lookup failed; no Medicare reference available",
        )
        return LineMatch(
            result=result,
            raw_code=raw_code,
            normalized=normalized,
            valid_code=True,
            requested_year=requested_year,
            queries=tuple(queries),
        )

    trail = dict(
        raw_code=raw_code,
        normalized=normalized,
        valid_code=True,
        requested_year=requested_year,
        used_year_fallback=resolution.used_fallback,
        fallback_reason=resolution.fallback_reason,
        queries=tuple(queries),
    )

    match = resolution.result
    if match is None:
        result = _missing(
            item, code, modifier,
            note="No Medicare reference available for this service",
        )
        return LineMatch(result=result, **trail)

    row = match.row
    fee = calculate_reference_fee(row, adjustment, item.is_facility)
    if fee is None or fee <= 0:
        result = _missing(
            item, code, modifier,
            note="No fee data available for this code",
            year_used=resolution.year_used,
            description=row.description,
        )
        return LineMatch(result=result, **trail)

    reference_total = fee * item.units
    multiple = item.billed_amount / reference_total
    percent = int(round_half_up(multiple * 100, 0))
    status = determine_status(percent)

    notes = []
    if resolution.used_fallback:
        notes.append(f"Using {resolution.year_used} Medicare reference (latest available)")
    if match.modifier_fallback:
        notes.append(MODIFIER_FALLBACK_NOTE)
    is_bundled = check_bundling(row)
    if is_bundled:
        notes.append(BUNDLED_NOTE)
    notes.append(STATUS_NOTES[status])

    logger.debug(f"{code}: billed {item.billed_amount} vs reference {reference_total:.2f} ({percent}%)")

    result = LineResult(
        code=code,
        modifier=modifier,
        description=row.description or item.description,
        billed_amount=item.billed_amount,
        units=item.units,
        reference_per_unit=fee,
        reference_total=round_half_up(reference_total),
        multiple=round_half_up(multiple),
        status=status,
        match_status=MatchStatus.MATCHED,
        year_used=resolution.year_used,
        notes=tuple(notes),
        is_bundled=is_bundled,
        modifier_fallback_used=match.modifier_fallback,
    )
    return LineMatch(result=result, **trail)
